"""Integration tests for payment submission and review."""

from datetime import date
from uuid import uuid4

import pytest

from rentflow.core.errors import InvalidState, NotFound, Unauthorized, ValidationError
from rentflow.core.termination.service import TerminationService
from rentflow.db.models import (
    Contract,
    ContractStatus,
    Invoice,
    InvoiceStatus,
    Payment,
    PaymentStatus,
    PaymentType,
)
from rentflow.services.contracts import ContractService, NewContract
from rentflow.services.invoices import InvoiceService, generate_invoice_number
from rentflow.services.payments import PaymentService, max_advance_for
from rentflow.services.settings import get_system_settings
from tests.factories import (
    caller_for,
    create_contract,
    create_invoice,
    create_payment,
    create_payment_method,
)


pytestmark = pytest.mark.integration


@pytest.fixture()
def payments(db_session, notifier):
    return PaymentService(db_session, notifier=notifier)


class TestPaymentSubmission:

    def test_tenant_submits_for_own_contract(self, db_session, payments, portfolio):
        caller = caller_for(db_session, portfolio.tenant_user)
        payment = payments.create(
            caller,
            portfolio.contract.id,
            5000,
            "monthly",
            payment_method="bank_transfer",
            transaction_id="FT2601",
        )

        assert payment.status == PaymentStatus.PENDING.value
        assert payment.payment_type == PaymentType.MONTHLY.value
        assert payment.submitted_by == portfolio.tenant_user.id

    def test_tenant_cannot_pay_for_other_contract(self, db_session, payments, portfolio):
        other = create_contract(db_session, prop=portfolio.prop, units=[])
        db_session.commit()

        with pytest.raises(Unauthorized):
            payments.create(caller_for(db_session, portfolio.tenant_user), other.id, 5000, "MONTHLY")

    @pytest.mark.parametrize("amount,payment_type", [
        (0, "MONTHLY"),
        (-10, "MONTHLY"),
        (100, "BRIBE"),
    ])
    def test_invalid_submission(self, db_session, payments, portfolio, amount, payment_type):
        with pytest.raises(ValidationError):
            payments.create(caller_for(db_session, portfolio.admin), portfolio.contract.id, amount, payment_type)

    def test_advance_capped_at_contract_length(self, db_session, payments, portfolio):
        contract = db_session.get(Contract, portfolio.contract.id)
        cap = max_advance_for(contract)
        assert cap == 5000 * 12

        with pytest.raises(ValidationError):
            payments.create(caller_for(db_session, portfolio.admin), contract.id, cap + 1, "ADVANCE")
        payment = payments.create(caller_for(db_session, portfolio.admin), contract.id, cap, "ADVANCE")
        assert payment.amount == cap

    def test_invoice_must_belong_to_contract(self, db_session, payments, portfolio):
        other = create_contract(db_session, prop=portfolio.prop, units=[])
        invoice = create_invoice(db_session, contract=other)
        db_session.commit()

        with pytest.raises(NotFound):
            payments.create(
                caller_for(db_session, portfolio.admin),
                portfolio.contract.id,
                5000,
                "MONTHLY",
                invoice_id=invoice.id,
            )


class TestPaymentReview:

    def test_approve_advance_credits_contract(self, db_session, payments, portfolio, notifier):
        payment = create_payment(
            db_session, contract=portfolio.contract, amount=3000, payment_type=PaymentType.ADVANCE
        )
        db_session.commit()

        approved = payments.approve(caller_for(db_session, portfolio.accountant), payment.id)

        assert approved.status == PaymentStatus.APPROVED.value
        assert approved.approved_by == portfolio.accountant.id
        assert approved.approved_at is not None
        assert db_session.get(Contract, portfolio.contract.id).remaining_advance == 15000
        assert notifier.payments == [payment.id]

    def test_approval_activates_contract_under_review(self, db_session, payments, portfolio):
        contract = create_contract(
            db_session,
            tenant=portfolio.tenant,
            prop=portfolio.prop,
            units=[portfolio.spare_unit],
            status=ContractStatus.UNDER_REVIEW,
        )
        payment = create_payment(db_session, contract=contract)
        db_session.commit()

        payments.approve(caller_for(db_session, portfolio.owner), payment.id)

        assert db_session.get(Contract, contract.id).status == ContractStatus.ACTIVE.value

    def test_approval_leaves_pending_termination_alone(self, db_session, payments, portfolio):
        contract = db_session.get(Contract, portfolio.contract.id)
        contract.status = ContractStatus.PENDING_TERMINATION.value
        payment = create_payment(db_session, contract=contract)
        db_session.commit()

        payments.approve(caller_for(db_session, portfolio.owner), payment.id)

        assert db_session.get(Contract, contract.id).status == ContractStatus.PENDING_TERMINATION.value

    @pytest.mark.parametrize("amount,expected", [
        (2000, InvoiceStatus.PARTIALLY_PAID),
        (5000, InvoiceStatus.PAID),
    ])
    def test_approval_settles_invoice(self, db_session, payments, portfolio, amount, expected):
        invoice = create_invoice(db_session, contract=portfolio.contract, amount=5000)
        payment = create_payment(db_session, contract=portfolio.contract, amount=amount, invoice=invoice)
        db_session.commit()

        payments.approve(caller_for(db_session, portfolio.accountant), payment.id)

        invoice = db_session.get(Invoice, invoice.id)
        assert invoice.paid_amount == amount
        assert invoice.status == expected.value

    def test_reject_requires_reason(self, db_session, payments, portfolio):
        payment = create_payment(db_session, contract=portfolio.contract)
        db_session.commit()
        accountant = caller_for(db_session, portfolio.accountant)

        with pytest.raises(ValidationError):
            payments.reject(accountant, payment.id, "")

        rejected = payments.reject(accountant, payment.id, "Receipt unreadable")
        assert rejected.status == PaymentStatus.REJECTED.value
        assert rejected.rejection_reason == "Receipt unreadable"

    def test_payment_reviewed_once(self, db_session, payments, portfolio):
        payment = create_payment(db_session, contract=portfolio.contract)
        db_session.commit()
        accountant = caller_for(db_session, portfolio.accountant)

        payments.approve(accountant, payment.id)
        with pytest.raises(InvalidState):
            payments.approve(accountant, payment.id)
        with pytest.raises(InvalidState):
            payments.reject(accountant, payment.id, "Too late")

    @pytest.mark.parametrize("user_attr", ["property_admin", "tenant_user"])
    def test_only_reviewers_approve(self, db_session, payments, portfolio, user_attr):
        payment = create_payment(db_session, contract=portfolio.contract)
        db_session.commit()

        with pytest.raises(Unauthorized):
            payments.approve(caller_for(db_session, getattr(portfolio, user_attr)), payment.id)

    def test_unassigned_accountant_cannot_approve(self, db_session, payments, portfolio):
        payment = create_payment(db_session, contract=portfolio.contract)
        db_session.commit()

        with pytest.raises(Unauthorized):
            payments.approve(caller_for(db_session, portfolio.outside_accountant), payment.id)

    def test_list_scoped(self, db_session, payments, portfolio):
        create_payment(db_session, contract=portfolio.contract)
        create_payment(db_session, contract=create_contract(db_session, prop=portfolio.other_prop))
        db_session.commit()

        assert payments.list(caller_for(db_session, portfolio.owner))[1] == 2
        assert payments.list(caller_for(db_session, portfolio.accountant))[1] == 1
        assert payments.list(caller_for(db_session, portfolio.tenant_user))[1] == 1
        assert payments.list(caller_for(db_session, portfolio.owner), status="approved")[1] == 0


class TestAdvanceAccounting:
    """The remaining advance is what tenants get back: advance not used by invoices."""

    def _new_contract(self, db_session, portfolio, advance, rent=5000):
        return ContractService(db_session).create(
            caller_for(db_session, portfolio.admin),
            NewContract(
                tenant_id=portfolio.tenant.id,
                property_id=portfolio.prop.id,
                unit_ids=[portfolio.spare_unit.id],
                start_date=date(2026, 3, 1),
                end_date=date(2027, 3, 1),
                monthly_rent=rent,
                advance_payment=advance,
                legal_agreement_url="/uploads/lease.pdf",
            ),
        )

    def test_refund_excludes_rent_paid_from_advance(self, db_session, payments, portfolio):
        contract = self._new_contract(db_session, portfolio, advance=15000)
        payment = db_session.query(Payment).filter(Payment.contract_id == contract.id).one()
        assert payment.applied_amount == 5000

        payments.approve(caller_for(db_session, portfolio.accountant), payment.id)

        contract = db_session.get(Contract, contract.id)
        assert contract.status == ContractStatus.ACTIVE.value
        assert contract.remaining_advance == 10000
        invoice = db_session.query(Invoice).filter(Invoice.contract_id == contract.id).one()
        assert invoice.status == InvoiceStatus.PAID.value
        assert invoice.paid_amount == 5000

        request = TerminationService(db_session).create(
            contract.id, "Moving abroad", caller_for(db_session, portfolio.property_admin)
        )
        assert request.refund_amount == 10000

    def test_short_advance_goes_to_first_invoice(self, db_session, payments, portfolio):
        contract = self._new_contract(db_session, portfolio, advance=3000, rent=6000)
        payment = db_session.query(Payment).filter(Payment.contract_id == contract.id).one()
        assert payment.payment_type == PaymentType.MONTHLY.value

        payments.approve(caller_for(db_session, portfolio.owner), payment.id)

        invoice = db_session.query(Invoice).filter(Invoice.contract_id == contract.id).one()
        assert invoice.paid_amount == 3000
        assert invoice.status == InvoiceStatus.PARTIALLY_PAID.value
        assert db_session.get(Contract, contract.id).remaining_advance == 0

    def test_advance_pays_invoice_balance_then_credits_rest(self, db_session, payments, portfolio):
        invoice = create_invoice(
            db_session,
            contract=portfolio.contract,
            amount=5000,
            paid_amount=1000,
            status=InvoiceStatus.PARTIALLY_PAID,
        )
        payment = create_payment(
            db_session,
            contract=portfolio.contract,
            amount=8000,
            payment_type=PaymentType.ADVANCE,
            invoice=invoice,
        )
        db_session.commit()

        payments.approve(caller_for(db_session, portfolio.accountant), payment.id)

        invoice = db_session.get(Invoice, invoice.id)
        assert invoice.paid_amount == 5000
        assert invoice.status == InvoiceStatus.PAID.value
        assert db_session.get(Contract, portfolio.contract.id).remaining_advance == 12000 + 4000


class TestPaymentMethodReference:

    def test_method_name_copied_onto_payment(self, db_session, payments, portfolio):
        method = create_payment_method(db_session, name="CBE Transfer", bank_name="CBE")
        db_session.commit()

        payment = payments.create(
            caller_for(db_session, portfolio.tenant_user),
            portfolio.contract.id,
            5000,
            "MONTHLY",
            payment_method_id=method.id,
            payment_method="ignored",
        )

        assert payment.payment_method_id == method.id
        assert payment.payment_method == "CBE Transfer"

    def test_inactive_method_refused(self, db_session, payments, portfolio):
        method = create_payment_method(db_session, is_active=False)
        db_session.commit()

        with pytest.raises(ValidationError):
            payments.create(
                caller_for(db_session, portfolio.admin),
                portfolio.contract.id,
                5000,
                "MONTHLY",
                payment_method_id=method.id,
            )

    def test_unknown_method(self, db_session, payments, portfolio):
        with pytest.raises(NotFound):
            payments.create(
                caller_for(db_session, portfolio.admin),
                portfolio.contract.id,
                5000,
                "MONTHLY",
                payment_method_id=uuid4(),
            )


class TestInvoices:

    def test_invoice_number_format(self):
        number = generate_invoice_number()
        prefix, stamp, suffix = number.split("-")
        assert prefix == "INV"
        assert stamp == stamp.upper() and stamp.isalnum()
        assert len(suffix) == 6

    def test_create_applies_tax(self, db_session, portfolio):
        row = get_system_settings(db_session)
        row.tax_enabled = True
        row.tax_rate = 15
        db_session.commit()

        invoice = InvoiceService(db_session).create(
            caller_for(db_session, portfolio.accountant),
            portfolio.contract.id,
            1000,
            due_date=date(2026, 2, 1),
            period_start=date(2026, 1, 1),
            period_end=date(2026, 1, 31),
        )

        assert invoice.tax_amount == 150
        assert invoice.total_amount == 1150
        assert invoice.status == InvoiceStatus.PENDING.value

    def test_public_lookup_is_case_insensitive(self, db_session, portfolio):
        invoice = create_invoice(db_session, contract=portfolio.contract)
        db_session.commit()

        found = InvoiceService(db_session).get_by_number(invoice.invoice_number.lower())
        assert found.id == invoice.id

        with pytest.raises(NotFound):
            InvoiceService(db_session).get_by_number("INV-NOPE")
