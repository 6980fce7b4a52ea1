import datetime as dt

import pytest
from django.utils import timezone

from commissions.models import CommissionSubmission
from commissions.services import approve_commission, submit_commission
from commissions.tasks import flag_stale_pending_reviews, send_commission_notification


@pytest.mark.django_db
class TestCommissionNotifications:
    def test_submission_emails_manager_and_admins(
        self, admin_user, manager_user, rep_user, sop_acknowledged, make_submission,
        django_capture_on_commit_callbacks, mailoutbox,
    ):
        with django_capture_on_commit_callbacks(execute=True):
            submission = submit_commission(actor=rep_user, data=make_submission())

        assert len(mailoutbox) == 1
        message = mailoutbox[0]
        assert sorted(message.to) == sorted([admin_user.email, manager_user.email])
        assert "#1234" in message.subject
        assert "Rep User" in message.body
        assert str(submission.pk) in message.body

    def test_approval_emails_the_rep(
        self, admin_user, rep_user, sop_acknowledged, make_submission,
        django_capture_on_commit_callbacks, mailoutbox,
    ):
        submission = submit_commission(actor=rep_user, data=make_submission())
        with django_capture_on_commit_callbacks(execute=True):
            approve_commission(submission, actor=admin_user)

        assert len(mailoutbox) == 1
        assert mailoutbox[0].to == [rep_user.email]
        assert "passed compliance review" in mailoutbox[0].subject

    def test_nothing_is_sent_when_the_transaction_rolls_back(
        self, rep_user, make_submission, django_capture_on_commit_callbacks, mailoutbox,
    ):
        # No playbook acknowledgment: the submission is refused.
        with django_capture_on_commit_callbacks(execute=True):
            with pytest.raises(ValueError):
                submit_commission(actor=rep_user, data=make_submission())
        assert mailoutbox == []

    def test_unknown_event(self, rep_user, mailoutbox):
        assert send_commission_notification("00000000-0000-0000-0000-000000000000", "exploded") == "unknown event"
        assert mailoutbox == []

    def test_missing_submission(self, db, mailoutbox):
        assert send_commission_notification("00000000-0000-0000-0000-000000000000", "paid") == "not found"
        assert mailoutbox == []


@pytest.mark.django_db
class TestStaleReviewReminder:
    def test_nothing_stale(self, admin_user, mailoutbox):
        assert flag_stale_pending_reviews() == "0 stale"
        assert mailoutbox == []

    def test_reminds_admins(self, admin_user, rep_user, sop_acknowledged, make_submission, mailoutbox):
        submission = submit_commission(actor=rep_user, data=make_submission())
        CommissionSubmission.objects.filter(pk=submission.pk).update(
            updated_at=timezone.now() - dt.timedelta(hours=80),
        )

        assert flag_stale_pending_reviews() == "1 stale"
        assert len(mailoutbox) == 1
        assert mailoutbox[0].to == [admin_user.email]
        assert "1234" in mailoutbox[0].body
