"""rentflow: property management with contract termination approvals."""

__version__ = "0.3.0"
