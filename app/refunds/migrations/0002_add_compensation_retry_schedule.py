"""
Add celery-beat schedule for retrying refund compensations.

This migration creates the periodic task schedule for the
retry_pending_compensations task, which runs every 10 minutes to
re-queue pending or failed CompensationTasks.
"""

from django.db import migrations

TASK_NAME = "Retry Pending Refund Compensations"


def create_periodic_task(apps, schema_editor):
    """Create the periodic task for retrying compensations."""
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    # Create interval schedule: every 10 minutes
    schedule, _ = IntervalSchedule.objects.get_or_create(
        every=10,
        period="minutes",
    )

    PeriodicTask.objects.get_or_create(
        name=TASK_NAME,
        defaults={
            "task": "refunds.tasks.retry_pending_compensations",
            "interval": schedule,
            "enabled": True,
            "description": (
                "Re-queues inventory restoration and split reversal tasks "
                "that are still pending or failed after a succeeded refund."
            ),
        },
    )


def remove_periodic_task(apps, schema_editor):
    """Remove the periodic task on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(name=TASK_NAME).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("refunds", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_task, remove_periodic_task),
    ]
