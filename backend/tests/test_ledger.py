from decimal import Decimal

import pytest

from clinic_api.core.errors import Forbidden, NotFound, ValidationError
from clinic_api.core.ledger import delete_fee, list_fees, record_fee, revenue_totals, update_fee
from clinic_api.models.fee_model import Fee
from clinic_api.models.schemas import FeeCreate, FeeUpdate

from conftest import make_patient, principal_for

class TestRevenueTotals:

    def test_empty_ledger(self, session):
        totals = revenue_totals(session)

        assert totals["totalRevenue"] == Decimal("0")
        assert totals["pendingPayments"] == Decimal("0")

    def test_sums_match_manual_sums(self, session):
        _, patient = make_patient(session)
        paid = ["500.00", "0.10", "0.20", "1250.75"]
        pending = ["300.50", "0.05"]

        for amount in paid:
            record_fee(session, FeeCreate(patient_id=patient.id, amount=amount, service="Consult", payment_status="paid"))
        for amount in pending:
            record_fee(session, FeeCreate(patient_id=patient.id, amount=amount, service="Consult"))

        totals = revenue_totals(session)
        assert totals["totalRevenue"] == sum(Decimal(a) for a in paid)
        assert totals["pendingPayments"] == sum(Decimal(a) for a in pending)
        # No binary float drift
        assert str(totals["totalRevenue"]) == "1751.05"

class TestFeeRecords:

    def test_record_defaults_to_pending(self, session):
        _, patient = make_patient(session)
        fee = record_fee(session, FeeCreate(patient_id=patient.id, amount="500", service=" X-Ray "))

        assert fee.payment_status == "pending"
        assert fee.service == "X-Ray"
        assert Decimal(fee.amount) == Decimal("500.00")

    @pytest.mark.parametrize("amount", ["0", "-10", None])
    def test_amount_must_be_positive(self, session, amount):
        _, patient = make_patient(session)

        with pytest.raises(ValidationError) as exc_info:
            record_fee(session, FeeCreate(patient_id=patient.id, amount=amount, service="Consult"))
        assert "amount" in exc_info.value.details

    @pytest.mark.parametrize("amount", ["0.004", "10.015", "99.999"])
    def test_amount_limited_to_cents(self, session, amount):
        """Sub-cent amounts are rejected instead of rounded"""
        _, patient = make_patient(session)

        with pytest.raises(ValidationError) as exc_info:
            record_fee(session, FeeCreate(patient_id=patient.id, amount=amount, service="Consult"))
        assert exc_info.value.details["amount"] == "Amount cannot have more than two decimal places"
        assert session.query(Fee).count() == 0

    def test_whole_cents_kept_exactly(self, session):
        _, patient = make_patient(session)
        fee = record_fee(session, FeeCreate(patient_id=patient.id, amount="10.10", service="Consult"))

        assert Decimal(fee.amount) == Decimal("10.10")

    def test_amount_beyond_column_range(self, session):
        _, patient = make_patient(session)

        with pytest.raises(ValidationError):
            record_fee(session, FeeCreate(patient_id=patient.id, amount="1e30", service="Consult"))

    def test_invalid_payment_status(self, session):
        _, patient = make_patient(session)

        with pytest.raises(ValidationError):
            record_fee(session, FeeCreate(patient_id=patient.id, amount="10", service="Consult", payment_status="owed"))

    def test_unknown_patient(self, session):
        with pytest.raises(NotFound):
            record_fee(session, FeeCreate(patient_id=999, amount="10", service="Consult"))

    def test_partial_update(self, session):
        _, patient = make_patient(session)
        fee = record_fee(session, FeeCreate(patient_id=patient.id, amount="200", service="Consult"))

        updated = update_fee(session, fee.id, FeeUpdate(payment_status="paid", payment_method="cash"))
        assert updated.payment_status == "paid"
        assert updated.payment_method == "cash"
        assert updated.service == "Consult"
        assert revenue_totals(session)["totalRevenue"] == Decimal("200.00")

    def test_update_rejects_bad_amount(self, session):
        _, patient = make_patient(session)
        fee = record_fee(session, FeeCreate(patient_id=patient.id, amount="200", service="Consult"))

        with pytest.raises(ValidationError):
            update_fee(session, fee.id, FeeUpdate(amount="-1"))

        with pytest.raises(ValidationError):
            update_fee(session, fee.id, FeeUpdate(amount="10.015"))
        assert Decimal(session.get(Fee, fee.id).amount) == Decimal("200.00")

    def test_delete(self, session):
        _, patient = make_patient(session)
        fee = record_fee(session, FeeCreate(patient_id=patient.id, amount="200", service="Consult"))

        delete_fee(session, fee.id)
        assert session.get(Fee, fee.id) is None

        with pytest.raises(NotFound):
            delete_fee(session, fee.id)

    def test_patient_scoping(self, session, doctor_principal):
        user, mine = make_patient(session, phone="4440000001")
        _, theirs = make_patient(session, phone="4440000002")
        record_fee(session, FeeCreate(patient_id=mine.id, amount="10", service="Consult"))
        record_fee(session, FeeCreate(patient_id=theirs.id, amount="20", service="Consult"))

        principal = principal_for(user, mine)
        assert [fee.patient_id for fee in list_fees(session, principal)] == [mine.id]
        assert len(list_fees(session, doctor_principal)) == 2

        with pytest.raises(Forbidden):
            list_fees(session, principal, patient_id=theirs.id)
