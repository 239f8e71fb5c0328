"""Tests for Celery app configuration and compliance tasks."""

from contextlib import contextmanager
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from compliance.models import ComplianceLevel, ComplianceScore
from core.exceptions import ClientNotFound, ScoreRecomputeFailed


def _score(client_id=1, tenant_id=10):
    return ComplianceScore(
        id=5, client_id=client_id, tenant_id=tenant_id, score_value=70, level=ComplianceLevel.AMBER,
        missing_count=1, expiring_count=1, overdue_filings_count=1,
        last_calculated_at=datetime(2025, 6, 1, tzinfo=timezone.utc),
    )


@contextmanager
def mocked_service(service):
    """Patch the per-run engine and service construction used by the tasks."""
    engine = MagicMock()
    engine.dispose = AsyncMock()
    with patch("tasks.compliance_tasks.create_engine", return_value=engine), \
            patch("tasks.compliance_tasks.get_session_factory"), \
            patch("tasks.compliance_tasks.build_scoring_service", return_value=service):
        yield engine


class TestCeleryApp:
    """Tests for Celery app configuration."""

    def test_create_celery_app(self):
        """Should create a Celery app with correct configuration."""
        mock_redis = MagicMock()
        mock_redis.host = "redis.internal"
        mock_redis.port = 6380
        mock_redis.password = "secret"
        mock_redis.ssl = True

        mock_compliance = MagicMock()
        mock_compliance.refresh_interval_seconds = 3600.0

        from config.settings import CelerySettings
        from tasks.celery_app import create_celery_app

        app = create_celery_app(
            redis_settings=mock_redis,
            celery_settings=CelerySettings(),
            compliance_settings=mock_compliance,
        )

        assert app.main == "compliance_core"
        assert app.conf.broker_url == "rediss://:secret@redis.internal:6380/1"
        assert app.conf.result_backend == "rediss://:secret@redis.internal:6380/2"
        assert app.conf.task_acks_late is True

    def test_beat_schedule(self):
        """Should schedule the tenant-wide refresh."""
        from tasks.celery_app import REFRESH_SCHEDULE_NAME, celery_app

        entry = celery_app.conf.beat_schedule[REFRESH_SCHEDULE_NAME]
        assert entry["task"] == "tasks.compliance_tasks.refresh_all_tenants"
        assert entry["schedule"] == 86400.0

    def test_tasks_registered(self):
        from tasks.celery_app import celery_app
        import tasks.compliance_tasks  # noqa: F401

        for name in (
            "tasks.compliance_tasks.recompute_client_compliance",
            "tasks.compliance_tasks.refresh_tenant_compliance",
            "tasks.compliance_tasks.refresh_all_tenants",
        ):
            assert name in celery_app.tasks

    def test_get_task_info(self):
        """Should return task information."""
        from tasks.celery_app import celery_app, get_task_info

        mock_result = MagicMock()
        mock_result.status = "SUCCESS"
        mock_result.ready.return_value = True
        mock_result.successful.return_value = True
        mock_result.result = {"score_value": 70}

        with patch.object(celery_app, "AsyncResult", return_value=mock_result):
            info = get_task_info("task-1")

        assert info["status"] == "SUCCESS"
        assert info["result"] == {"score_value": 70}

    def test_get_task_info_pending(self):
        from tasks.celery_app import celery_app, get_task_info

        mock_result = MagicMock()
        mock_result.status = "PENDING"
        mock_result.ready.return_value = False

        with patch.object(celery_app, "AsyncResult", return_value=mock_result):
            info = get_task_info("task-1")

        assert info["ready"] is False
        assert "result" not in info


class TestRecomputeTask:
    """recompute_client_compliance."""

    def test_retry_policy(self):
        """Should retry only ScoreRecomputeFailed, with jittered exponential backoff."""
        from tasks.compliance_tasks import recompute_client_compliance

        assert recompute_client_compliance.autoretry_for == (ScoreRecomputeFailed,)
        assert recompute_client_compliance.max_retries == 5
        assert recompute_client_compliance.retry_backoff is True
        assert recompute_client_compliance.retry_jitter is True
        assert ClientNotFound not in recompute_client_compliance.autoretry_for

    def test_success(self):
        from tasks.compliance_tasks import recompute_client_compliance

        service = MagicMock()
        service.recompute_for_client = AsyncMock(return_value=_score())

        with mocked_service(service) as engine:
            result = recompute_client_compliance.run(1, 10)

        service.recompute_for_client.assert_awaited_once_with(1, 10)
        engine.dispose.assert_awaited_once()
        assert result["score_value"] == 70
        assert result["level"] == "amber"

    def test_failure_propagates_and_disposes_engine(self):
        from tasks.compliance_tasks import recompute_client_compliance

        service = MagicMock()
        service.recompute_for_client = AsyncMock(side_effect=ScoreRecomputeFailed(1, 10, "db down"))

        with mocked_service(service) as engine:
            with pytest.raises(ScoreRecomputeFailed):
                recompute_client_compliance.run(1, 10)

        engine.dispose.assert_awaited_once()


class TestRefreshTasks:
    """Tenant and beat-level refresh."""

    def test_refresh_tenant(self):
        from tasks.compliance_tasks import refresh_tenant_compliance

        service = MagicMock()
        service.refresh_tenant_compliance = AsyncMock(return_value=3)

        with mocked_service(service):
            result = refresh_tenant_compliance.run(10)

        assert result == {"tenant_id": 10, "updated": 3}

    def test_refresh_all_tenants_fans_out(self):
        """Should enqueue one tenant refresh per tenant."""
        from tasks import compliance_tasks

        service = MagicMock()
        service.list_tenant_ids = AsyncMock(return_value=[10, 20])

        with mocked_service(service), \
                patch.object(compliance_tasks.refresh_tenant_compliance, "delay") as delay:
            result = compliance_tasks.refresh_all_tenants.run()

        assert result == {"tenants": 2}
        assert [c.args for c in delay.call_args_list] == [(10,), (20,)]


class TestRunAsync:
    """The sync bridge."""

    def test_without_running_loop(self):
        from tasks.compliance_tasks import _run_async

        async def answer():
            return 42

        assert _run_async(answer()) == 42

    @pytest.mark.asyncio
    async def test_inside_running_loop(self):
        from tasks.compliance_tasks import _run_async

        async def answer():
            return 42

        assert _run_async(answer()) == 42
