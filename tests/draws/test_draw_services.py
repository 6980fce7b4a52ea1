from decimal import Decimal

import pytest

from core.models import AuditLog
from draws.models import Draw, DrawSetting
from draws.services import (
    all_draw_settings,
    apply_draw_deduction,
    approve_draw,
    deny_draw,
    get_draw_setting,
    mark_draw_paid,
    outstanding_draw_balance,
    request_draw,
    update_draw_setting,
    visible_draws,
)


@pytest.fixture
def paid_draw(admin_user, manager_user, rep_user):
    draw = request_draw(actor=rep_user, job_number="1234", amount="1000.00")
    approve_draw(draw, actor=manager_user)
    return mark_draw_paid(draw, actor=admin_user)


@pytest.mark.django_db
class TestRequestDraw:
    def test_small_draw(self, rep_user):
        draw = request_draw(actor=rep_user, job_number="1234", amount="500", job_name="Smith")
        assert draw.status == Draw.Status.PENDING
        assert draw.amount == Decimal("500.00")
        assert draw.requires_manager_approval is False
        assert draw.remaining_balance == Decimal("0.00")

    def test_large_draw_needs_manager_approval(self, rep_user):
        draw = request_draw(actor=rep_user, job_number="1234", amount="1500.01")
        assert draw.requires_manager_approval is True

    def test_threshold_itself_does_not_need_approval(self, rep_user):
        draw = request_draw(actor=rep_user, job_number="1234", amount="1500.00")
        assert draw.requires_manager_approval is False

    def test_capped_by_estimated_commission(self, rep_user):
        with pytest.raises(ValueError, match="50%"):
            request_draw(actor=rep_user, job_number="1234", amount="1200", estimated_commission="2000")
        draw = request_draw(actor=rep_user, job_number="1234", amount="1000", estimated_commission="2000")
        assert draw.estimated_commission == Decimal("2000.00")

    @pytest.mark.parametrize("job_number, amount", [("12", "100"), ("abcd", "100"), ("1234", "0"), ("1234", "-5"), ("1234", "")])
    def test_invalid_requests(self, rep_user, job_number, amount):
        with pytest.raises(ValueError):
            request_draw(actor=rep_user, job_number=job_number, amount=amount)

    def test_inactive_user_cannot_request(self, rep_user):
        rep_user.is_active = False
        rep_user.save(update_fields=["is_active"])
        with pytest.raises(PermissionError):
            request_draw(actor=rep_user, job_number="1234", amount="100")


@pytest.mark.django_db
class TestReview:
    def test_manager_approves_direct_report(self, manager_user, rep_user):
        draw = request_draw(actor=rep_user, job_number="1234", amount="2000")
        draw = approve_draw(draw, actor=manager_user)
        assert draw.status == Draw.Status.APPROVED
        assert draw.approved_by == manager_user
        assert draw.approved_at is not None

    def test_manager_cannot_review_someone_elses_rep(self, manager_user, other_rep):
        draw = request_draw(actor=other_rep, job_number="1234", amount="200")
        with pytest.raises(PermissionError):
            approve_draw(draw, actor=manager_user)

    def test_admin_reviews_any_draw(self, admin_user, rep_user):
        draw = request_draw(actor=rep_user, job_number="1234", amount="200")
        assert approve_draw(draw, actor=admin_user).status == Draw.Status.APPROVED

    def test_nobody_reviews_their_own_draw(self, admin_user):
        draw = request_draw(actor=admin_user, job_number="1234", amount="200")
        with pytest.raises(PermissionError, match="your own"):
            approve_draw(draw, actor=admin_user)

    def test_rep_cannot_review(self, rep_user, other_rep):
        draw = request_draw(actor=other_rep, job_number="1234", amount="200")
        with pytest.raises(PermissionError):
            approve_draw(draw, actor=rep_user)

    def test_deny_requires_reason(self, manager_user, rep_user):
        draw = request_draw(actor=rep_user, job_number="1234", amount="200")
        with pytest.raises(ValueError, match="reason"):
            deny_draw(draw, actor=manager_user, reason=" ")
        draw = deny_draw(draw, actor=manager_user, reason="Job not yet scheduled")
        assert draw.status == Draw.Status.DENIED
        assert draw.denial_reason == "Job not yet scheduled"

    def test_only_pending_draws_are_reviewed(self, manager_user, rep_user):
        draw = request_draw(actor=rep_user, job_number="1234", amount="200")
        approve_draw(draw, actor=manager_user)
        with pytest.raises(ValueError, match="pending"):
            deny_draw(draw, actor=manager_user, reason="Changed my mind")


@pytest.mark.django_db
class TestPayoutAndDeduction:
    def test_mark_paid_opens_balance(self, paid_draw):
        assert paid_draw.status == Draw.Status.PAID
        assert paid_draw.remaining_balance == Decimal("1000.00")
        assert paid_draw.paid_at is not None

    def test_only_approved_draws_are_paid(self, admin_user, rep_user):
        draw = request_draw(actor=rep_user, job_number="1234", amount="200")
        with pytest.raises(ValueError, match="approved"):
            mark_draw_paid(draw, actor=admin_user)

    def test_manager_cannot_pay_out(self, manager_user, rep_user):
        draw = request_draw(actor=rep_user, job_number="1234", amount="200")
        approve_draw(draw, actor=manager_user)
        with pytest.raises(PermissionError):
            mark_draw_paid(draw, actor=manager_user)

    def test_partial_deduction(self, admin_user, paid_draw):
        application = apply_draw_deduction(paid_draw, "400", actor=admin_user, notes="Payroll adjustment")
        assert application.amount == Decimal("400.00")
        assert application.balance_before == Decimal("1000.00")
        assert application.balance_after == Decimal("600.00")

        paid_draw.refresh_from_db()
        assert paid_draw.remaining_balance == Decimal("600.00")
        assert paid_draw.status == Draw.Status.PAID

    def test_deduction_is_clamped_at_zero(self, admin_user, paid_draw):
        application = apply_draw_deduction(paid_draw, "2500", actor=admin_user)
        assert application.amount == Decimal("1000.00")
        assert application.balance_after == Decimal("0.00")

        paid_draw.refresh_from_db()
        assert paid_draw.status == Draw.Status.DEDUCTED
        assert paid_draw.deducted_at is not None

    def test_deduction_needs_paid_draw_and_positive_amount(self, admin_user, rep_user, paid_draw):
        with pytest.raises(ValueError):
            apply_draw_deduction(paid_draw, "0", actor=admin_user)
        pending = request_draw(actor=rep_user, job_number="1234", amount="100")
        with pytest.raises(ValueError, match="paid draws"):
            apply_draw_deduction(pending, "50", actor=admin_user)

    def test_outstanding_balance(self, admin_user, rep_user, paid_draw):
        assert outstanding_draw_balance(rep_user) == Decimal("1000.00")
        apply_draw_deduction(paid_draw, "250", actor=admin_user)
        assert outstanding_draw_balance(rep_user) == Decimal("750.00")
        assert outstanding_draw_balance(admin_user) == Decimal("0.00")


@pytest.mark.django_db
class TestVisibilityAndSettings:
    def test_visible_draws(self, admin_user, manager_user, rep_user, other_rep):
        mine = request_draw(actor=rep_user, job_number="1234", amount="100")
        theirs = request_draw(actor=other_rep, job_number="4321", amount="100")

        assert list(visible_draws(rep_user)) == [mine]
        assert list(visible_draws(manager_user)) == [mine]
        assert set(visible_draws(admin_user)) == {mine, theirs}

    def test_settings_defaults(self, db):
        assert get_draw_setting(DrawSetting.MANAGER_APPROVAL_THRESHOLD) == Decimal("1500.00")
        assert all_draw_settings() == {
            DrawSetting.MANAGER_APPROVAL_THRESHOLD: Decimal("1500.00"),
            DrawSetting.MAX_COMMISSION_RATIO: Decimal("0.50"),
        }

    def test_update_setting_changes_threshold(self, admin_user, rep_user):
        update_draw_setting(DrawSetting.MANAGER_APPROVAL_THRESHOLD, "500", actor=admin_user)
        assert get_draw_setting(DrawSetting.MANAGER_APPROVAL_THRESHOLD) == Decimal("500")
        assert request_draw(actor=rep_user, job_number="1234", amount="600").requires_manager_approval is True
        assert AuditLog.objects.filter(action="draw_setting.update").exists()

    def test_ratio_cannot_exceed_one(self, admin_user):
        with pytest.raises(ValueError, match="cannot exceed 1"):
            update_draw_setting(DrawSetting.MAX_COMMISSION_RATIO, "1.5", actor=admin_user)

    def test_unknown_setting(self, admin_user):
        with pytest.raises(ValueError, match="Unknown draw setting"):
            update_draw_setting("max_draws", "3", actor=admin_user)

    def test_rep_cannot_change_settings(self, rep_user):
        with pytest.raises(PermissionError):
            update_draw_setting(DrawSetting.MAX_COMMISSION_RATIO, "0.4", actor=rep_user)
