"""Celery configuration."""
import os

from celery import Celery
from celery.schedules import crontab

os.environ.setdefault(
    "DJANGO_SETTINGS_MODULE",
    os.getenv("DJANGO_SETTINGS_MODULE", "config.settings.prod"),
)

app = Celery("roofpro")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()

# Beat schedule
app.conf.beat_schedule = {
    "flag-stale-pending-reviews": {
        "task": "commissions.tasks.flag_stale_pending_reviews",
        "schedule": crontab(minute=0, hour=7),  # Daily at 7am
    },
    "report-unacknowledged-sop-users": {
        "task": "compliance.tasks.report_unacknowledged_users",
        "schedule": crontab(minute=30, hour=6),  # Daily at 6:30am
    },
    "flag-expired-subcontractor-coi": {
        "task": "directory.tasks.flag_expired_coi",
        "schedule": crontab(minute=0, hour=6, day_of_week="mon"),  # Weekly
    },
}
