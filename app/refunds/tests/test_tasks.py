"""
Tests for refund Celery tasks.

- run_compensation_task: runs one outbox entry
- retry_pending_compensations: periodic re-queue of unfinished entries
"""

from datetime import timedelta

import pytest
from django.test import override_settings
from django.utils import timezone
from django_celery_beat.models import PeriodicTask
from freezegun import freeze_time

from refunds.state_machines import CompensationKind, CompensationStatus
from refunds.tasks import retry_pending_compensations, run_compensation_task
from refunds.tests.factories import CompensationTaskFactory, RefundFactory


@pytest.fixture
def refund(payment):
    return RefundFactory(payment=payment)


class TestTaskConfiguration:
    def test_tasks_are_registered(self):
        assert run_compensation_task.name == "refunds.tasks.run_compensation_task"
        assert retry_pending_compensations.name == "refunds.tasks.retry_pending_compensations"

    def test_run_compensation_task_retries_unexpected_errors(self):
        assert run_compensation_task.autoretry_for == (Exception,)
        assert run_compensation_task.max_retries == 3

    @pytest.mark.django_db
    def test_retry_schedule_installed(self):
        task = PeriodicTask.objects.get(name="Retry Pending Refund Compensations")

        assert task.task == "refunds.tasks.retry_pending_compensations"
        assert task.interval.every == 10
        assert task.enabled is True


@pytest.mark.django_db
class TestRunCompensationTask:
    def test_unknown_task(self):
        assert run_compensation_task(999999) == {"status": "not_found", "task_id": 999999}

    def test_already_succeeded(self, refund):
        task = CompensationTaskFactory(refund=refund, status=CompensationStatus.SUCCEEDED)

        assert run_compensation_task(task.pk) == {"status": "already_succeeded", "task_id": task.pk}

    def test_runs_split_reversal(self, refund, payment_split):
        task = CompensationTaskFactory(refund=refund, kind=CompensationKind.SPLIT_REVERSAL)

        result = run_compensation_task(task.pk)

        assert result == {
            "status": CompensationStatus.SUCCEEDED,
            "task_id": task.pk,
            "kind": CompensationKind.SPLIT_REVERSAL,
            "attempts": 1,
            "succeeded": True,
        }

    def test_failure_is_recorded_not_raised(self, refund):
        task = CompensationTaskFactory(refund=refund, kind=CompensationKind.SPLIT_REVERSAL)

        result = run_compensation_task(task.pk)

        assert result["status"] == CompensationStatus.FAILED
        assert result["succeeded"] is False
        task.refresh_from_db()
        assert task.attempts == 1


@pytest.mark.django_db
class TestRetryPendingCompensations:
    @pytest.fixture
    def mock_delay(self, mocker):
        return mocker.patch("refunds.tasks.run_compensation_task.delay")

    def test_requeues_stale_pending_and_failed(self, refund, mock_delay):
        with freeze_time("2026-01-01 10:00:00"):
            pending = CompensationTaskFactory(refund=refund, kind=CompensationKind.INVENTORY_RESTORE)
            failed = CompensationTaskFactory(
                refund=refund,
                kind=CompensationKind.SPLIT_REVERSAL,
                status=CompensationStatus.FAILED,
                attempts=2,
                last_attempted_at=timezone.now(),
            )

        with freeze_time("2026-01-01 10:05:00"):
            result = retry_pending_compensations()

        assert result == {"queued": 2, "exhausted": 0}
        queued = {c.args[0] for c in mock_delay.call_args_list}
        assert queued == {pending.pk, failed.pk}

    def test_skips_tasks_inside_grace_period(self, refund, mock_delay):
        with freeze_time("2026-01-01 10:00:00"):
            CompensationTaskFactory(refund=refund)

        with freeze_time("2026-01-01 10:00:30"):
            result = retry_pending_compensations()

        assert result["queued"] == 0
        mock_delay.assert_not_called()

    def test_skips_succeeded_tasks(self, refund, mock_delay):
        with freeze_time("2026-01-01 10:00:00"):
            CompensationTaskFactory(refund=refund, status=CompensationStatus.SUCCEEDED)

        with freeze_time("2026-01-01 11:00:00"):
            result = retry_pending_compensations()

        assert result["queued"] == 0

    @override_settings(REFUND_COMPENSATION_MAX_ATTEMPTS=3)
    def test_exhausted_tasks_are_counted_not_queued(self, refund, mock_delay, caplog):
        with freeze_time("2026-01-01 10:00:00"):
            CompensationTaskFactory(
                refund=refund,
                status=CompensationStatus.FAILED,
                attempts=3,
                last_attempted_at=timezone.now() - timedelta(hours=1),
            )

        with freeze_time("2026-01-01 11:00:00"):
            result = retry_pending_compensations()

        assert result == {"queued": 0, "exhausted": 1}
        assert "exhausted their attempts" in caplog.text
