"""
Celery tasks for refund compensations.

This module provides async tasks for:
- Running a single compensation task from the outbox
- Periodically re-queuing pending or failed compensation tasks

Usage:
    from refunds.tasks import run_compensation_task

    run_compensation_task.delay(task_id)

    # Scheduled every 10 minutes via celery-beat
    from refunds.tasks import retry_pending_compensations
    retry_pending_compensations.delay()
"""

from __future__ import annotations

import logging
from datetime import timedelta

from celery import shared_task
from django.conf import settings
from django.db.models import Q
from django.utils import timezone

from refunds.models import CompensationTask
from refunds.state_machines import CompensationStatus

logger = logging.getLogger(__name__)

MAX_TASK_RETRIES = 3
RETRY_BATCH_SIZE = 100


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": MAX_TASK_RETRIES},
    acks_late=True,
)
def run_compensation_task(self, task_id: int) -> dict:
    """
    Run one compensation task.

    Compensation failures are recorded on the task (and picked up again by
    retry_pending_compensations); only unexpected errors such as a lost
    database connection trigger a Celery retry.

    Args:
        task_id: CompensationTask primary key

    Returns:
        Dict with the task status
    """
    from refunds.services import CompensationService

    try:
        task = CompensationTask.objects.select_related("refund").get(pk=task_id)
    except CompensationTask.DoesNotExist:
        logger.error("CompensationTask not found", extra={"task_id": task_id})
        return {"status": "not_found", "task_id": task_id}

    if task.is_done:
        logger.info(
            "CompensationTask already succeeded, skipping",
            extra={"task_id": task_id, "kind": task.kind},
        )
        return {"status": "already_succeeded", "task_id": task_id}

    succeeded = CompensationService.run(task)
    return {
        "status": task.status,
        "task_id": task_id,
        "kind": task.kind,
        "attempts": task.attempts,
        "succeeded": succeeded,
    }


@shared_task
def retry_pending_compensations() -> dict:
    """
    Periodic task to re-queue unfinished compensation tasks.

    Picks pending or failed tasks below the attempt limit whose last run
    (or creation) is older than the grace period, so tasks still being run
    inline are left alone.

    This task is scheduled via celery-beat every 10 minutes.
    """
    max_attempts = settings.REFUND_COMPENSATION_MAX_ATTEMPTS
    cutoff = timezone.now() - timedelta(seconds=settings.REFUND_COMPENSATION_RETRY_GRACE_SECONDS)

    task_ids = list(
        CompensationTask.objects.filter(
            status__in=[CompensationStatus.PENDING, CompensationStatus.FAILED],
            attempts__lt=max_attempts,
        )
        .filter(
            Q(last_attempted_at__lt=cutoff)
            | Q(last_attempted_at__isnull=True, created_at__lt=cutoff)
        )
        .order_by("created_at")
        .values_list("id", flat=True)[:RETRY_BATCH_SIZE]
    )

    for task_id in task_ids:
        run_compensation_task.delay(task_id)

    exhausted = CompensationTask.objects.filter(
        status=CompensationStatus.FAILED,
        attempts__gte=max_attempts,
    ).count()

    if exhausted:
        logger.warning(
            f"{exhausted} compensation tasks exhausted their attempts",
            extra={"exhausted": exhausted, "max_attempts": max_attempts},
        )

    logger.info(
        f"Re-queued {len(task_ids)} compensation tasks",
        extra={"queued": len(task_ids)},
    )
    return {"queued": len(task_ids), "exhausted": exhausted}
