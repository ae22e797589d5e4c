"""Factory functions for creating test database records.

Each factory creates a model instance, adds it to the session, and flushes
so that generated fields (id, created_at, etc.) are populated. Callers
commit before handing the session to a service, since services roll back
on failure.

Usage::

    from tests.factories import create_property, create_unit, create_contract

    def test_something(db_session):
        prop = create_property(db_session)
        unit = create_unit(db_session, prop=prop)
        contract = create_contract(db_session, prop=prop, units=[unit])
        db_session.commit()
"""

from datetime import date, timedelta
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from rentflow.core.rbac.context import CallerContext, build_caller_context
from rentflow.core.security import get_password_hash
from rentflow.db.models import (
    Contract,
    ContractStatus,
    ContractUnit,
    Invoice,
    InvoiceStatus,
    Payment,
    PaymentMethod,
    PaymentMethodType,
    PaymentStatus,
    PaymentType,
    Property,
    PropertyAssignment,
    Tenant,
    Unit,
    UnitStatus,
    User,
    UserRole,
)


_counter = 0

TEST_PASSWORD = "testpass123"
# Hashed once per test run; bcrypt is slow on purpose
TEST_PASSWORD_HASH = get_password_hash(TEST_PASSWORD)


def _next_id() -> int:
    """Return a monotonically increasing integer for unique default values."""
    global _counter
    _counter += 1
    return _counter


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


def create_user(
    session: Session,
    *,
    role: UserRole = UserRole.SYSTEM_ADMIN,
    email: Optional[str] = None,
    name: Optional[str] = None,
    phone: Optional[str] = None,
    is_active: bool = True,
) -> User:
    n = _next_id()
    user = User(
        email=email or f"user-{n}@example.com",
        name=name or f"Test User {n}",
        phone=phone,
        password_hash=TEST_PASSWORD_HASH,
        role=role.value,
        is_active=is_active,
    )
    session.add(user)
    session.flush()
    return user


def caller_for(session: Session, user: User) -> CallerContext:
    return build_caller_context(session, user)


# ---------------------------------------------------------------------------
# Properties and units
# ---------------------------------------------------------------------------


def create_property(session: Session, *, name: Optional[str] = None) -> Property:
    n = _next_id()
    prop = Property(
        name=name or f"Test Property {n}",
        address=f"{n} Bole Road",
        city="Addis Ababa",
    )
    session.add(prop)
    session.flush()
    return prop


def create_unit(
    session: Session,
    *,
    prop: Optional[Property] = None,
    unit_number: Optional[str] = None,
    monthly_rent: float = 5000,
    status: UnitStatus = UnitStatus.AVAILABLE,
) -> Unit:
    if prop is None:
        prop = create_property(session)
    n = _next_id()
    unit = Unit(
        property_id=prop.id,
        unit_number=unit_number or f"U-{n}",
        monthly_rent=monthly_rent,
        status=status.value,
    )
    session.add(unit)
    session.flush()
    return unit


def assign(session: Session, user: User, prop: Property) -> PropertyAssignment:
    assignment = PropertyAssignment(user_id=user.id, property_id=prop.id)
    session.add(assignment)
    session.flush()
    return assignment


# ---------------------------------------------------------------------------
# Tenants and contracts
# ---------------------------------------------------------------------------


def create_tenant(
    session: Session,
    *,
    user: Optional[User] = None,
    full_name: Optional[str] = None,
    phone: str = "0911223344",
) -> Tenant:
    n = _next_id()
    tenant = Tenant(
        user_id=user.id if user else None,
        full_name=full_name or f"Tenant {n}",
        phone=phone,
        email=f"tenant-{n}@example.com",
    )
    session.add(tenant)
    session.flush()
    return tenant


def create_contract(
    session: Session,
    *,
    tenant: Optional[Tenant] = None,
    prop: Optional[Property] = None,
    units: Optional[Iterable[Unit]] = None,
    status: ContractStatus = ContractStatus.ACTIVE,
    monthly_rent: float = 5000,
    remaining_advance: float = 0,
    start_date: Optional[date] = None,
    months: int = 12,
) -> Contract:
    """Create a contract bound to ``units``, which become occupied."""
    if prop is None:
        prop = create_property(session)
    if tenant is None:
        tenant = create_tenant(session)
    units = list(units) if units is not None else [create_unit(session, prop=prop)]
    start_date = start_date or date(2026, 1, 1)

    contract = Contract(
        tenant_id=tenant.id,
        property_id=prop.id,
        start_date=start_date,
        end_date=start_date + timedelta(days=30 * months),
        monthly_rent=monthly_rent,
        security_deposit=0,
        advance_payment=remaining_advance,
        remaining_advance=remaining_advance,
        legal_agreement_url="/uploads/agreement.pdf",
        status=status.value,
    )
    session.add(contract)
    session.flush()

    for unit in units:
        session.add(ContractUnit(contract_id=contract.id, unit_id=unit.id, monthly_rent=unit.monthly_rent))
        unit.status = UnitStatus.OCCUPIED.value
    session.flush()
    return contract


# ---------------------------------------------------------------------------
# Billing
# ---------------------------------------------------------------------------


def create_invoice(
    session: Session,
    *,
    contract: Contract,
    amount: float = 5000,
    paid_amount: float = 0,
    status: InvoiceStatus = InvoiceStatus.PENDING,
) -> Invoice:
    n = _next_id()
    invoice = Invoice(
        contract_id=contract.id,
        invoice_number=f"INV-TEST-{n:06d}",
        amount=amount,
        tax_amount=0,
        total_amount=amount,
        paid_amount=paid_amount,
        due_date=contract.start_date + timedelta(days=30),
        period_start=contract.start_date,
        period_end=contract.start_date + timedelta(days=30),
        status=status.value,
    )
    session.add(invoice)
    session.flush()
    return invoice


def create_payment(
    session: Session,
    *,
    contract: Contract,
    amount: float = 5000,
    payment_type: PaymentType = PaymentType.MONTHLY,
    status: PaymentStatus = PaymentStatus.PENDING,
    invoice: Optional[Invoice] = None,
    applied_amount: float = 0,
) -> Payment:
    payment = Payment(
        contract_id=contract.id,
        invoice_id=invoice.id if invoice else None,
        amount=amount,
        applied_amount=applied_amount,
        payment_type=payment_type.value,
        status=status.value,
    )
    session.add(payment)
    session.flush()
    return payment


def create_payment_method(
    session: Session,
    *,
    name: Optional[str] = None,
    method_type: PaymentMethodType = PaymentMethodType.OFFLINE,
    is_active: bool = True,
    display_order: int = 0,
    **fields,
) -> PaymentMethod:
    n = _next_id()
    method = PaymentMethod(
        name=name or f"Method {n}",
        type=method_type.value,
        is_active=is_active,
        display_order=display_order,
        **fields,
    )
    session.add(method)
    session.flush()
    return method
