# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the Dramatiq broker, goal actors and the cron scheduler."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from dramatiq.brokers.stub import StubBroker

from src.domains.goals.tracker import EvaluationSummary
from src.infrastructure.background.broker import BrokerManager, Queues
from src.infrastructure.background.scheduler import (
    GOAL_BATCH_TASK_NAME,
    DramatiqScheduler,
    start_scheduler,
    stop_scheduler,
)
from src.infrastructure.background.tasks import (
    evaluate_student_goals,
    get_all_actors,
    goal_batch_evaluation_job,
    run_async,
)
from src.infrastructure.background.tasks.base import close_thread_event_loop

GOALS_MODULE = "src.infrastructure.background.tasks.goals"


@pytest.fixture
def worker_loop():
    """Close the worker event loop created by run_async after the test."""
    yield
    close_thread_event_loop()


@pytest.fixture
def mock_tracker():
    """Patch the goal tracker used by the actors."""
    tracker = MagicMock()
    tracker.evaluate_for_student = AsyncMock(
        return_value=EvaluationSummary(total=3, updated=2, errors=1)
    )
    tracker.run_batch_evaluation = AsyncMock(
        return_value=EvaluationSummary(total=10, updated=4, errors=0)
    )
    with (
        patch(f"{GOALS_MODULE}.build_goal_tracker", return_value=tracker),
        patch(f"{GOALS_MODULE}.get_worker_db_manager"),
    ):
        yield tracker


class TestBrokerManager:
    """Tests for broker setup."""

    def test_stub_broker_in_test_mode(self):
        """DRAMATIQ_TEST_MODE selects the in-memory broker."""
        manager = BrokerManager()

        with (
            patch.dict("os.environ", {"DRAMATIQ_TEST_MODE": "true"}),
            patch("src.infrastructure.background.broker.dramatiq.set_broker") as set_broker,
        ):
            broker = manager.setup()

        assert isinstance(broker, StubBroker)
        assert manager.is_initialized is True
        set_broker.assert_called_once_with(broker)
        assert manager.get_queue_stats() == {"broker_type": "stub", "status": "healthy"}

    def test_setup_is_idempotent(self):
        """A second setup returns the same broker."""
        manager = BrokerManager()

        with (
            patch.dict("os.environ", {"DRAMATIQ_TEST_MODE": "true"}),
            patch("src.infrastructure.background.broker.dramatiq.set_broker"),
        ):
            assert manager.setup() is manager.setup()

    def test_uninitialized(self):
        """Accessing the broker before setup fails."""
        manager = BrokerManager()

        assert manager.get_queue_stats() == {"status": "not_initialized"}
        with pytest.raises(RuntimeError):
            _ = manager.broker


class TestGoalActors:
    """Tests for the goal evaluation actors."""

    def test_actors_registered(self):
        """Both goal actors are exported and routed to the goals queue."""
        actors = get_all_actors()

        assert {a.actor_name for a in actors} == {
            "evaluate_student_goals",
            "goal_batch_evaluation_job",
        }
        assert all(a.queue_name == Queues.GOALS for a in actors)

    def test_evaluate_student_goals(self, mock_tracker, worker_loop, sample_student_id):
        """The targeted actor returns the student's summary."""
        result = evaluate_student_goals(str(sample_student_id))

        assert result == {
            "student_id": str(sample_student_id),
            "total": 3,
            "updated": 2,
            "errors": 1,
        }
        mock_tracker.evaluate_for_student.assert_awaited_once_with(sample_student_id)

    def test_evaluate_student_goals_reraises(self, mock_tracker, worker_loop, sample_student_id):
        """Persistence failures are raised so Dramatiq retries."""
        mock_tracker.evaluate_for_student.side_effect = RuntimeError("db down")

        with pytest.raises(RuntimeError, match="db down"):
            evaluate_student_goals(str(sample_student_id))

    def test_batch_job_completed(self, mock_tracker, worker_loop):
        """The batch job reports its counts."""
        result = goal_batch_evaluation_job()

        assert result == {"status": "completed", "total": 10, "updated": 4, "errors": 0}

    def test_batch_job_failure_reported(self, mock_tracker, worker_loop):
        """A failing sweep is reported, not raised."""
        mock_tracker.run_batch_evaluation.side_effect = RuntimeError("db down")

        result = goal_batch_evaluation_job()

        assert result == {"status": "failed", "error": "db down"}


class TestRunAsync:
    """Tests for the worker event loop bridge."""

    def test_runs_coroutine(self, worker_loop):
        """Coroutines run to completion on the thread loop."""

        async def answer():
            return 42

        assert run_async(answer()) == 42

    def test_reuses_thread_loop(self, worker_loop):
        """Successive calls share one event loop."""

        async def current_loop():
            return asyncio.get_running_loop()

        assert run_async(current_loop()) is run_async(current_loop())


class TestDramatiqScheduler:
    """Tests for the cron scheduler."""

    def test_add_cron_task(self):
        """Tasks are recorded with their cron expression."""
        scheduler = DramatiqScheduler()

        task = scheduler.add_cron_task("Sweep", "goal_batch_evaluation_job", "0 8 * * *")

        assert scheduler.get_task(task.id) is task
        assert task.to_dict()["cron_expression"] == "0 8 * * *"
        assert scheduler.get_stats()["task_count"] == 1

    def test_invalid_cron_rejected(self):
        """Malformed cron expressions fail when the task is added."""
        scheduler = DramatiqScheduler()

        with pytest.raises(ValueError):
            scheduler.add_cron_task("Broken", "goal_batch_evaluation_job", "every morning")

        assert scheduler.list_tasks() == []

    @pytest.mark.asyncio
    async def test_execute_enqueues_actor(self):
        """Running a task sends its actor with the stored arguments."""
        scheduler = DramatiqScheduler()
        actor = MagicMock()
        task = scheduler.add_cron_task(
            "Student", "evaluate_student_goals", "*/5 * * * *", args=("student-1",)
        )

        with patch.object(scheduler, "_get_actor", return_value=actor):
            await scheduler._execute_task(task.id)

        actor.send.assert_called_once_with("student-1")
        assert task.run_count == 1
        assert task.last_run is not None

    @pytest.mark.asyncio
    async def test_execute_unknown_actor_counts_error(self):
        """A missing actor is counted as an error."""
        scheduler = DramatiqScheduler()
        task = scheduler.add_cron_task("Ghost", "no_such_actor", "0 * * * *")

        await scheduler._execute_task(task.id)

        assert task.error_count == 1
        assert task.run_count == 0

    @pytest.mark.asyncio
    async def test_tasks_added_before_start_are_scheduled(self):
        """Starting the scheduler registers jobs for tasks added earlier."""
        scheduler = DramatiqScheduler()
        task = scheduler.add_cron_task("Sweep", "goal_batch_evaluation_job", "0 8 * * *")

        await scheduler.start()
        try:
            assert scheduler._scheduler.get_job(task.id) is not None
            assert len(scheduler._scheduler.get_jobs()) == 1
        finally:
            await scheduler.stop()

    @pytest.mark.asyncio
    async def test_unknown_task_ignored(self):
        """Executing an unregistered task id does nothing."""
        scheduler = DramatiqScheduler()
        actor = MagicMock()

        with patch.object(scheduler, "_get_actor", return_value=actor):
            await scheduler._execute_task("missing")

        actor.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_started_scheduler_registers_job(self):
        """Tasks added while running become APScheduler jobs."""
        scheduler = DramatiqScheduler()
        await scheduler.start()
        try:
            task = scheduler.add_cron_task("Sweep", "goal_batch_evaluation_job", "0 8 * * *")

            assert scheduler.is_running is True
            assert scheduler._scheduler.get_job(task.id) is not None
        finally:
            await scheduler.stop()

        assert scheduler.is_running is False

    @pytest.mark.asyncio
    async def test_start_scheduler_registers_goal_batch(self):
        """The shared scheduler starts with the goal batch job."""
        scheduler = await start_scheduler()
        try:
            names = [t.name for t in scheduler.list_tasks()]
            assert names == [GOAL_BATCH_TASK_NAME]
            assert scheduler.list_tasks()[0].actor_name == "goal_batch_evaluation_job"
        finally:
            await stop_scheduler()
