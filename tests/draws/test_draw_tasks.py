import pytest

from draws.services import apply_draw_deduction, approve_draw, deny_draw, mark_draw_paid, request_draw
from draws.tasks import send_draw_notification


@pytest.fixture
def approved_draw(manager_user, rep_user):
    draw = request_draw(actor=rep_user, job_number="1234", amount="1000.00")
    return approve_draw(draw, actor=manager_user)


@pytest.mark.django_db
class TestDrawNotifications:
    def test_request_emails_the_manager(
        self, admin_user, manager_user, rep_user, django_capture_on_commit_callbacks, mailoutbox,
    ):
        with django_capture_on_commit_callbacks(execute=True):
            request_draw(actor=rep_user, job_number="1234", amount="2000.00", job_name="Smith")

        assert len(mailoutbox) == 1
        assert mailoutbox[0].to == [manager_user.email]
        assert mailoutbox[0].subject == "New draw request: Rep User ($2,000.00) for job #1234"
        assert "needs your review" in mailoutbox[0].body

    def test_request_without_manager_goes_to_admins(
        self, admin_user, django_capture_on_commit_callbacks, mailoutbox,
    ):
        loner = type(admin_user).objects.create_user(
            email="loner@test.com", password="testpass123", employment_status="active",
        )
        with django_capture_on_commit_callbacks(execute=True):
            request_draw(actor=loner, job_number="1234", amount="300.00")

        assert mailoutbox[0].to == [admin_user.email]

    def test_approval_emails_rep_and_accounting(
        self, admin_user, manager_user, rep_user, django_capture_on_commit_callbacks, mailoutbox,
    ):
        draw = request_draw(actor=rep_user, job_number="1234", amount="1000.00")
        with django_capture_on_commit_callbacks(execute=True):
            approve_draw(draw, actor=manager_user)

        assert len(mailoutbox) == 1
        assert mailoutbox[0].to == sorted([admin_user.email, rep_user.email])
        assert "ready for disbursement" in mailoutbox[0].body

    def test_denial_carries_the_reason(
        self, manager_user, rep_user, django_capture_on_commit_callbacks, mailoutbox,
    ):
        draw = request_draw(actor=rep_user, job_number="1234", amount="1000.00")
        with django_capture_on_commit_callbacks(execute=True):
            deny_draw(draw, actor=manager_user, reason="Job not yet scheduled")

        assert mailoutbox[0].to == [rep_user.email]
        assert mailoutbox[0].subject == "Draw denied: $1,000.00 for job #1234"
        assert "Job not yet scheduled" in mailoutbox[0].body

    def test_payout_emails_the_rep(
        self, admin_user, rep_user, approved_draw, django_capture_on_commit_callbacks, mailoutbox,
    ):
        with django_capture_on_commit_callbacks(execute=True):
            mark_draw_paid(approved_draw, actor=admin_user)

        assert mailoutbox[0].to == [rep_user.email]
        assert mailoutbox[0].subject == "Draw disbursed: $1,000.00 for job #1234"

    def test_partial_deduction(
        self, admin_user, rep_user, approved_draw, django_capture_on_commit_callbacks, mailoutbox,
    ):
        draw = mark_draw_paid(approved_draw, actor=admin_user)
        with django_capture_on_commit_callbacks(execute=True):
            apply_draw_deduction(draw, "400.00", actor=admin_user)

        assert len(mailoutbox) == 1
        assert mailoutbox[0].subject == "Partial draw deduction: $400.00 of $1,000.00 for job #1234"
        assert "Remaining balance: $600.00" in mailoutbox[0].body

    def test_full_deduction(
        self, admin_user, rep_user, approved_draw, django_capture_on_commit_callbacks, mailoutbox,
    ):
        draw = mark_draw_paid(approved_draw, actor=admin_user)
        with django_capture_on_commit_callbacks(execute=True):
            apply_draw_deduction(draw, "1500.00", actor=admin_user)

        assert mailoutbox[0].subject == "Draw fully deducted: $1,000.00 for job #1234"
        assert "fully deducted from your commission" in mailoutbox[0].body

    def test_unknown_event(self, db, mailoutbox):
        assert send_draw_notification("00000000-0000-0000-0000-000000000000", "exploded") == "unknown event"
        assert mailoutbox == []

    def test_missing_draw(self, db, mailoutbox):
        assert send_draw_notification("00000000-0000-0000-0000-000000000000", "paid") == "not found"
        assert mailoutbox == []
