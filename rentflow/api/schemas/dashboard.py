from pydantic import BaseModel


class DashboardStats(BaseModel):
    total_properties: int = 0
    total_units: int = 0
    occupied_units: int = 0
    available_units: int = 0
    active_contracts: int = 0
    under_review_contracts: int = 0
    terminated_contracts: int = 0
    pending_payments: int = 0
    approved_payments: int = 0
    total_revenue: float = 0
    pending_invoices: int = 0
    overdue_invoices: int = 0
    open_terminations: int = 0
