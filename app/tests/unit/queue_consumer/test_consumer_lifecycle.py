"""Unit tests for the queue consumer polling task lifecycle."""

import threading
import time
from unittest.mock import MagicMock, patch

import pytest

from queue_consumer import InMemoryQueueConsumerModule, QueueConsumer


@pytest.mark.unit
class TestQueueConsumerLifecycle:
    """Start/stop behaviour of the background polling task."""

    def test_start_schedules_fixed_delay_job(self, consumer_factory):
        consumer = consumer_factory(polling_period_seconds=45)

        consumer.start()
        try:
            assert consumer.is_running is True
            assert len(consumer._scheduler.jobs) == 1
            job = consumer._job
            assert job.interval == 45
            assert job.unit == "seconds"
            assert consumer._thread.daemon is True
            assert consumer._thread.is_alive()
        finally:
            consumer.stop()

    def test_start_twice_keeps_single_job(self, consumer_factory):
        consumer = consumer_factory()

        consumer.start()
        try:
            scheduler = consumer._scheduler
            thread = consumer._thread
            consumer.start()

            assert consumer._scheduler is scheduler
            assert consumer._thread is thread
            assert len(scheduler.jobs) == 1
        finally:
            consumer.stop()

    def test_stop_cancels_job_and_joins_thread(self, consumer_factory):
        consumer = consumer_factory(scheduler_tick_seconds=0.01)
        consumer.start()
        scheduler = consumer._scheduler
        thread = consumer._thread

        consumer.stop()

        assert consumer.is_running is False
        assert scheduler.jobs == []
        assert not thread.is_alive()

    def test_stop_when_not_running_is_noop(self, consumer_factory):
        consumer = consumer_factory()

        consumer.stop()
        consumer.stop()

        assert consumer.is_running is False

    def test_stop_twice_is_noop(self, consumer_factory):
        consumer = consumer_factory(scheduler_tick_seconds=0.01)
        consumer.start()

        consumer.stop()
        consumer.stop()

        assert consumer.is_running is False

    def test_can_restart_after_stop(self, consumer_factory):
        consumer = consumer_factory(scheduler_tick_seconds=0.01)
        consumer.start()
        consumer.stop()

        consumer.start()
        try:
            assert consumer.is_running is True
            assert consumer._thread.is_alive()
        finally:
            consumer.stop()

    def test_context_manager_starts_and_stops(self, consumer_factory):
        consumer = consumer_factory(scheduler_tick_seconds=0.01)

        with consumer as running:
            assert running is consumer
            assert consumer.is_running is True

        assert consumer.is_running is False

    def test_scheduled_job_runs_a_cycle(
        self, consumer_factory, enqueue_items, processor
    ):
        enqueue_items("a")
        consumer = consumer_factory()

        consumer.start()
        try:
            consumer._scheduler.run_all()
        finally:
            consumer.stop()

        assert processor.processed == [("a", 1, 1)]

    @patch("queue_consumer.consumer.logger")
    def test_cycle_errors_do_not_escape_the_job(self, mock_logger, consumer_factory):
        consumer = consumer_factory()

        with patch.object(
            consumer, "_process_queued_items", side_effect=RuntimeError("unexpected")
        ):
            consumer._run_cycle(threading.Event())

        mock_logger.error.assert_called_once()
        assert mock_logger.error.call_args.args == ("queue_processing_cycle_failed",)

    def test_worker_thread_polls_on_its_own(
        self, consumer_factory, enqueue_items, processor
    ):
        enqueue_items("a")
        processed = threading.Event()
        processor.hook = lambda item_id: processed.set()
        consumer = consumer_factory(polling_period_seconds=1, scheduler_tick_seconds=0.05)

        consumer.start()
        try:
            assert processed.wait(timeout=5)
        finally:
            consumer.stop()

        assert processor.processed[0] == ("a", 1, 1)

    def test_restart_never_overlaps_cycles(self, store, processor, retry_policy, clock):
        # Transactions without a store lock, so only the cycle lock can serialise
        module = InMemoryQueueConsumerModule(store, processor)
        consumer = QueueConsumer(
            module,
            retry_policy,
            MagicMock(),
            10,
            1,
            clock=clock,
            scheduler_tick_seconds=0.05,
        )
        for item_id in ("a", "b", "c", "d"):
            store.enqueue(item_id, next_attempt_time=clock())

        active = []
        max_active = []
        counter_lock = threading.Lock()
        first_item_started = threading.Event()
        second_item_started = threading.Event()

        def slow_item(item_id):
            with counter_lock:
                active.append(item_id)
                max_active.append(len(active))
            if len(processor.processed) == 1:
                first_item_started.set()
            else:
                second_item_started.set()
            time.sleep(1.6)
            with counter_lock:
                active.remove(item_id)

        processor.hook = slow_item

        consumer.start()
        try:
            assert first_item_started.wait(timeout=5)
            consumer.stop(wait=False)
            consumer.start()
            assert second_item_started.wait(timeout=10)
        finally:
            consumer.stop()

        assert max(max_active) == 1

    def test_cycle_waits_for_cycle_in_progress(self, consumer_factory, enqueue_items, processor):
        enqueue_items("a")
        consumer = consumer_factory()
        finished = threading.Event()

        def run_manual_cycle():
            consumer.process_queued_items()
            finished.set()

        with consumer._cycle_lock:
            worker = threading.Thread(target=run_manual_cycle)
            worker.start()
            assert not finished.wait(timeout=0.2)
            assert processor.processed == []

        worker.join(timeout=5)
        assert finished.is_set()
        assert processor.processed == [("a", 1, 1)]
