"""Fixtures shared by the integration tests."""

from dataclasses import dataclass
from typing import List

import pytest

from rentflow.core.rbac.context import CallerContext
from rentflow.db.models import Contract, Property, Tenant, Unit, User, UserRole
from tests.factories import (
    assign,
    caller_for,
    create_contract,
    create_property,
    create_tenant,
    create_unit,
    create_user,
)


@dataclass
class Portfolio:
    """One leased property plus a second, unrelated one, and a user per role."""

    admin: User
    owner: User
    property_admin: User
    accountant: User
    outside_accountant: User
    tenant_user: User
    tenant: Tenant
    prop: Property
    other_prop: Property
    units: List[Unit]
    spare_unit: Unit
    contract: Contract

    def caller(self, db_session, user: User) -> CallerContext:
        return caller_for(db_session, user)


@pytest.fixture()
def portfolio(db_session) -> Portfolio:
    """Committed data set: an ACTIVE two-unit contract with 12,000 of advance left."""
    admin = create_user(db_session, role=UserRole.SYSTEM_ADMIN, email="admin@example.com")
    owner = create_user(db_session, role=UserRole.OWNER, email="owner@example.com")
    property_admin = create_user(db_session, role=UserRole.PROPERTY_ADMIN, email="padmin@example.com")
    accountant = create_user(db_session, role=UserRole.ACCOUNTANT, email="accountant@example.com")
    outside_accountant = create_user(db_session, role=UserRole.ACCOUNTANT, email="outside@example.com")
    tenant_user = create_user(db_session, role=UserRole.TENANT, email="tenant@example.com")

    prop = create_property(db_session, name="Bole Heights")
    other_prop = create_property(db_session, name="Kazanchis Plaza")
    assign(db_session, property_admin, prop)
    assign(db_session, accountant, prop)
    assign(db_session, outside_accountant, other_prop)

    units = [create_unit(db_session, prop=prop, unit_number=n) for n in ("A-101", "A-102")]
    spare_unit = create_unit(db_session, prop=prop, unit_number="A-103")
    tenant = create_tenant(db_session, user=tenant_user, full_name="Abebe Kebede")
    contract = create_contract(
        db_session,
        tenant=tenant,
        prop=prop,
        units=units,
        remaining_advance=12000,
    )
    db_session.commit()

    return Portfolio(
        admin=admin,
        owner=owner,
        property_admin=property_admin,
        accountant=accountant,
        outside_accountant=outside_accountant,
        tenant_user=tenant_user,
        tenant=tenant,
        prop=prop,
        other_prop=other_prop,
        units=units,
        spare_unit=spare_unit,
        contract=contract,
    )


class RecordingNotifier:
    """Collects notifications instead of sending them."""

    def __init__(self):
        self.terminations = []
        self.payments = []

    def termination_status_changed(self, request):
        self.terminations.append(request.status)

    def payment_approved(self, payment):
        self.payments.append(payment.id)


@pytest.fixture()
def notifier():
    return RecordingNotifier()
