"""Database models for rentflow."""

from rentflow.db.models.user import User, UserRole
from rentflow.db.models.session import UserSession
from rentflow.db.models.property import Property, Unit, UnitStatus, PropertyAssignment
from rentflow.db.models.tenant import Tenant
from rentflow.db.models.contract import Contract, ContractUnit, ContractStatus
from rentflow.db.models.invoice import Invoice, InvoiceStatus
from rentflow.db.models.payment import (
    FeeType,
    Payment,
    PaymentMethod,
    PaymentMethodType,
    PaymentStatus,
    PaymentType,
)
from rentflow.db.models.termination import TerminationRequest, TerminationHistory
from rentflow.db.models.settings import SystemSettings, TaxType

__all__ = [
    "User",
    "UserRole",
    "UserSession",
    "Property",
    "Unit",
    "UnitStatus",
    "PropertyAssignment",
    "Tenant",
    "Contract",
    "ContractUnit",
    "ContractStatus",
    "Invoice",
    "InvoiceStatus",
    "Payment",
    "PaymentStatus",
    "PaymentType",
    "PaymentMethod",
    "PaymentMethodType",
    "FeeType",
    "TerminationRequest",
    "TerminationHistory",
    "SystemSettings",
    "TaxType",
]
