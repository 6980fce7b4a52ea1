from decimal import Decimal

import pytest

from commissions.models import CommissionDocument
from commissions.services import (
    assign_user_tier,
    create_document,
    create_tier,
    delete_document,
    evaluate_margin_gate,
    minimum_margin_for,
    update_document,
    update_document_status,
    visible_documents,
)
from compliance.models import ComplianceViolation
from core.models import AuditLog

DocStatus = CommissionDocument.Status


@pytest.fixture
def standard_tier(admin_user):
    return create_tier(
        actor=admin_user,
        data={"name": "Standard", "allowed_op_percentages": "10, 12.5, 15", "allowed_profit_splits": "35, 40, 45, 50"},
    )


@pytest.fixture
def low_margin_data(make_document):
    # Net profit 2,700 on 10,000: a 27% margin.
    return make_document(job_type="insurance", material_cost=Decimal("4000.00"), rep_profit_percent=Decimal("0.45"))


@pytest.mark.django_db
class TestDocumentCalculation:
    def test_create_computes_totals(self, rep_user, make_document):
        document = create_document(actor=rep_user, data=make_document())

        assert document.status == DocStatus.DRAFT
        assert document.created_by == rep_user
        assert document.tier is None
        assert document.op_amount == Decimal("1000.00")
        assert document.contract_total_net == Decimal("9000.00")
        assert document.net_profit == Decimal("3700.00")
        assert document.rep_commission == Decimal("1480.00")
        assert document.company_profit == Decimal("3220.00")
        assert document.margin == Decimal("0.3700")
        assert document.tier_drops == 0

    def test_invalid_inputs_are_refused(self, rep_user, make_document):
        with pytest.raises(ValueError, match="Job Name & ID is required"):
            create_document(actor=rep_user, data=make_document(job_name_id=""))

    def test_low_margin_drops_rep_with_tier(self, admin_user, rep_user, standard_tier, low_margin_data):
        assign_user_tier(rep_user, actor=admin_user, tier=standard_tier)
        document = create_document(actor=rep_user, data=low_margin_data)

        assert document.tier == standard_tier
        assert document.margin == Decimal("0.2700")
        assert document.tier_drops == 2
        assert document.applied_rep_profit_percent == Decimal("0.35")
        assert document.rep_commission == Decimal("945.00")
        assert document.company_profit == Decimal("2755.00")

    def test_low_margin_without_tier_keeps_requested_split(self, rep_user, low_margin_data):
        document = create_document(actor=rep_user, data=low_margin_data)

        assert document.tier_drops == 2
        assert document.applied_rep_profit_percent == Decimal("0.45")
        assert document.rep_commission == Decimal("1215.00")

    def test_margin_gate_reports_minimum(self, rep_user, low_margin_data):
        document = create_document(actor=rep_user, data=low_margin_data)
        gate = evaluate_margin_gate(document)
        assert gate.minimum == Decimal("0.40")
        assert gate.below_minimum is True

    @pytest.mark.parametrize(
        "job_type, roof_type, expected",
        [
            ("insurance", "shingle", Decimal("0.40")),
            ("insurance", "tile", Decimal("0.40")),
            ("retail", "tile", Decimal("0.35")),
            ("retail", "shingle", Decimal("0.30")),
            ("hoa", "foam", Decimal("0.30")),
        ],
    )
    def test_minimum_margin(self, job_type, roof_type, expected):
        assert minimum_margin_for(job_type, roof_type) == expected


@pytest.mark.django_db
class TestDocumentLifecycle:
    def test_update_recalculates(self, rep_user, make_document):
        document = create_document(actor=rep_user, data=make_document())
        document = update_document(document, actor=rep_user, data={"labor_cost": Decimal("2500.00")})
        assert document.net_profit == Decimal("3200.00")
        assert document.rep_commission == Decimal("1280.00")

    def test_submit_then_approve(self, admin_user, rep_user, make_document):
        document = create_document(actor=rep_user, data=make_document())
        document = update_document_status(document, actor=rep_user, status=DocStatus.SUBMITTED)
        assert document.submitted_at is not None

        document = update_document_status(document, actor=admin_user, status=DocStatus.APPROVED, notes="Looks right")
        assert document.status == DocStatus.APPROVED
        assert document.approved_by == admin_user
        assert document.reviewer_notes == "Looks right"

    def test_submitted_documents_are_locked(self, rep_user, make_document):
        document = create_document(actor=rep_user, data=make_document())
        update_document_status(document, actor=rep_user, status=DocStatus.SUBMITTED)
        with pytest.raises(ValueError, match="draft or rejected"):
            update_document(document, actor=rep_user, data={"labor_cost": Decimal("1.00")})

    def test_rejected_document_can_be_reworked(self, admin_user, rep_user, make_document):
        document = create_document(actor=rep_user, data=make_document())
        update_document_status(document, actor=rep_user, status=DocStatus.SUBMITTED)
        document = update_document_status(document, actor=admin_user, status=DocStatus.REJECTED, notes="Fix labor")
        assert document.approved_by is None

        document = update_document(document, actor=rep_user, data={"labor_cost": Decimal("1800.00")})
        assert document.net_profit == Decimal("3900.00")
        document = update_document_status(document, actor=rep_user, status=DocStatus.SUBMITTED)
        assert document.status == DocStatus.SUBMITTED

    def test_rep_cannot_approve_own_document(self, rep_user, make_document):
        document = create_document(actor=rep_user, data=make_document())
        update_document_status(document, actor=rep_user, status=DocStatus.SUBMITTED)
        with pytest.raises(PermissionError):
            update_document_status(document, actor=rep_user, status=DocStatus.APPROVED)

    def test_invalid_transition(self, admin_user, rep_user, make_document):
        document = create_document(actor=rep_user, data=make_document())
        with pytest.raises(ValueError, match="Cannot move"):
            update_document_status(document, actor=admin_user, status=DocStatus.APPROVED)

    def test_submitting_low_margin_insurance_job_records_violation(self, rep_user, low_margin_data):
        document = create_document(actor=rep_user, data=low_margin_data)
        update_document_status(document, actor=rep_user, status=DocStatus.SUBMITTED)

        violation = ComplianceViolation.objects.get(user=rep_user)
        assert violation.violation_type == "low_margin"
        assert violation.severity == ComplianceViolation.Severity.MAJOR
        assert violation.sop_key == "SOP-01"
        assert violation.detected_by is None

    def test_healthy_margin_records_nothing(self, rep_user, make_document):
        document = create_document(actor=rep_user, data=make_document(job_type="insurance", material_cost=Decimal("1000.00")))
        update_document_status(document, actor=rep_user, status=DocStatus.SUBMITTED)
        assert not ComplianceViolation.objects.exists()


@pytest.mark.django_db
class TestDocumentAccess:
    def test_owner_deletes_own_draft(self, rep_user, make_document):
        document = create_document(actor=rep_user, data=make_document())
        pk = document.pk
        delete_document(document, actor=rep_user)
        assert not CommissionDocument.objects.filter(pk=pk).exists()
        assert AuditLog.objects.filter(action="commission_document.delete", entity_id=str(pk)).exists()

    def test_owner_cannot_delete_submitted(self, rep_user, make_document):
        document = create_document(actor=rep_user, data=make_document())
        document = update_document_status(document, actor=rep_user, status=DocStatus.SUBMITTED)
        with pytest.raises(ValueError, match="Only draft"):
            delete_document(document, actor=rep_user)

    def test_other_rep_cannot_touch_document(self, rep_user, other_rep, make_document):
        document = create_document(actor=rep_user, data=make_document())
        with pytest.raises(PermissionError):
            delete_document(document, actor=other_rep)
        with pytest.raises(PermissionError):
            update_document(document, actor=other_rep, data={"labor_cost": Decimal("1.00")})

    def test_admin_deletes_any_document(self, admin_user, rep_user, make_document):
        document = create_document(actor=rep_user, data=make_document())
        document = update_document_status(document, actor=rep_user, status=DocStatus.SUBMITTED)
        delete_document(document, actor=admin_user)
        assert not CommissionDocument.objects.exists()

    def test_visibility(self, admin_user, manager_user, rep_user, other_rep, make_document):
        mine = create_document(actor=rep_user, data=make_document())
        theirs = create_document(actor=other_rep, data=make_document(job_name_id="Jones #4321"))

        assert list(visible_documents(rep_user)) == [mine]
        assert set(visible_documents(manager_user)) == {mine, theirs}
        assert set(visible_documents(admin_user)) == {mine, theirs}
