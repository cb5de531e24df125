"""Tests for the reporter facade - end-to-end pipeline behaviour."""

import asyncio
import threading

import pytest

from tracker_sdk.config import ConfigurationError, TrackerConfig
from tracker_sdk.events import EventType
from tracker_sdk.monitors import PerformanceMonitor
from tracker_sdk.reporter import create_reporter
from tracker_sdk.storage import MemoryStorage
from tracker_sdk.transport.http import HttpTransport
from tests.mocks import RecordingTransport, make_events, settle


class TestDelivery:
    @pytest.mark.asyncio
    async def test_batch_of_ten_in_order(self, make_reporter):
        transport = RecordingTransport()
        reporter = make_reporter(transport, batch_size=10)
        events = make_events(10)

        for event in events:
            reporter.add(event)
        await settle()

        assert transport.delivered == [events]
        await reporter.destroy()

    @pytest.mark.asyncio
    async def test_threshold_without_timer(self, make_reporter):
        transport = RecordingTransport()
        reporter = make_reporter(transport, batch_size=2)

        reporter.add(make_events(1)[0])
        reporter.add(make_events(1)[0])
        await settle()

        assert len(transport.delivered) == 1
        await reporter.destroy()

    @pytest.mark.asyncio
    async def test_interval_sends_single_event(self, make_reporter):
        transport = RecordingTransport()
        reporter = make_reporter(transport, batch_size=10, report_interval_seconds=1.0)

        event = reporter.track(EventType.CUSTOM, {"action": "signup"})
        await asyncio.sleep(1.1)

        assert transport.delivered == [[event]]
        await reporter.destroy()

    @pytest.mark.asyncio
    async def test_retry_then_success(self, make_reporter, queue):
        transport = RecordingTransport(fail_times=2)
        reporter = make_reporter(transport, max_retries=3)

        for event in make_events(3):
            reporter.add(event)
        await reporter.flush()

        assert len(transport.delivered) == 1
        assert len(queue) == 0
        await reporter.destroy()

    @pytest.mark.asyncio
    async def test_always_failing_persists_batch(self, make_reporter, queue):
        transport = RecordingTransport(always_fail=True)
        reporter = make_reporter(transport, max_retries=3)
        events = make_events(3)

        for event in events:
            reporter.add(event)
        await reporter.flush()

        assert transport.delivered == []
        assert [e.id for e in queue.peek()] == [e.id for e in events]
        await reporter.destroy()

    @pytest.mark.asyncio
    async def test_flush_with_nothing_queued(self, make_reporter):
        transport = RecordingTransport()
        reporter = make_reporter(transport)

        await reporter.flush()

        assert transport.calls == []
        await reporter.destroy()


class TestNoSilentLoss:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("count", [1, 7, 25])
    async def test_failing_transport(self, make_reporter, queue, count):
        transport = RecordingTransport(always_fail=True)
        reporter = make_reporter(transport, batch_size=4, retry_backoff_seconds=0.5)
        events = make_events(count)

        for event in events:
            reporter.add(event)
        await asyncio.sleep(0.01)
        await asyncio.wait_for(reporter.destroy(), timeout=2.0)

        persisted = {e.id for e in queue.peek()}
        assert persisted == {e.id for e in events}

    @pytest.mark.asyncio
    async def test_flaky_transport(self, make_reporter, queue):
        transport = RecordingTransport(fail_times=5)
        reporter = make_reporter(transport, batch_size=3, max_retries=1)
        events = make_events(12)

        for event in events:
            reporter.add(event)
            await asyncio.sleep(0)
        await asyncio.sleep(0.1)
        await reporter.destroy()

        delivered = {e.id for e in transport.delivered_events}
        persisted = {e.id for e in queue.peek()}
        assert delivered | persisted == {e.id for e in events}
        assert not delivered & persisted


class TestOffline:
    @pytest.mark.asyncio
    async def test_offline_flush_persists_without_network(self, make_reporter, queue, connectivity):
        connectivity.set_online(False)
        transport = RecordingTransport()
        reporter = make_reporter(transport)
        events = make_events(3)

        for event in events:
            reporter.add(event)
        await reporter.flush()

        assert transport.calls == []
        assert [e.id for e in queue.peek()] == [e.id for e in events]
        await reporter.destroy()

    @pytest.mark.asyncio
    async def test_back_online_replays(self, make_reporter, queue, connectivity):
        connectivity.set_online(False)
        transport = RecordingTransport()
        reporter = make_reporter(transport)
        events = make_events(3)

        for event in events:
            reporter.add(event)
        await reporter.flush()

        connectivity.set_online(True)
        await reporter.coordinator.wait_replay()

        assert len(transport.calls) == 1
        assert transport.delivered == [events]
        assert len(queue) == 0
        await reporter.destroy()

    @pytest.mark.asyncio
    async def test_start_replays_previous_run(self, make_reporter, queue):
        leftovers = make_events(2)
        queue.append(leftovers)
        transport = RecordingTransport()
        reporter = make_reporter(transport)

        reporter.start()
        await reporter.coordinator.wait_replay()

        assert transport.delivered == [leftovers]
        assert len(queue) == 0
        await reporter.destroy()


class TestDestroy:
    @pytest.mark.asyncio
    async def test_final_flush(self, make_reporter):
        transport = RecordingTransport()
        reporter = make_reporter(transport)
        events = make_events(3)

        for event in events:
            reporter.add(event)
        await reporter.destroy()

        assert transport.delivered == [events]
        assert transport.stopped

    @pytest.mark.asyncio
    async def test_cancels_backoff(self, make_reporter, queue):
        transport = RecordingTransport(always_fail=True)
        reporter = make_reporter(transport, batch_size=2, retry_backoff_seconds=30.0)

        for event in make_events(2):
            reporter.add(event)
        await settle()
        assert reporter.engine.stats["pending_backoffs"] == 1

        await asyncio.wait_for(reporter.destroy(), timeout=1.0)

        assert len(transport.calls) == 1
        assert len(queue) == 2

    @pytest.mark.asyncio
    async def test_detaches_connectivity(self, make_reporter, connectivity):
        reporter = make_reporter(RecordingTransport())
        reporter.start()
        assert connectivity.listener_count == 1

        await reporter.destroy()

        assert connectivity.listener_count == 0

    @pytest.mark.asyncio
    async def test_no_resurrection(self, make_reporter, queue):
        transport = RecordingTransport()
        reporter = make_reporter(transport, batch_size=1)
        await reporter.destroy()

        reporter.add(make_events(1)[0])
        await reporter.flush()
        await settle()

        assert transport.calls == []
        assert len(queue) == 0
        assert reporter.destroyed

    @pytest.mark.asyncio
    async def test_destroy_twice(self, make_reporter):
        reporter = make_reporter(RecordingTransport())
        await reporter.destroy()
        await reporter.destroy()


class TestSources:
    @pytest.mark.asyncio
    async def test_subscribed_source_feeds_reporter(self, make_reporter):
        transport = RecordingTransport()
        reporter = make_reporter(transport)
        monitor = PerformanceMonitor()
        reporter.subscribe(monitor)

        event = monitor.record("render", 12.5)
        await reporter.flush()

        assert transport.delivered == [[event]]

        await reporter.destroy()
        monitor.record("render", 1.0)
        assert len(transport.calls) == 1

    @pytest.mark.asyncio
    async def test_add_from_other_thread(self, make_reporter):
        transport = RecordingTransport()
        reporter = make_reporter(transport)
        reporter.start()
        event = make_events(1)[0]

        thread = threading.Thread(target=reporter.add, args=(event,))
        thread.start()
        thread.join()
        await settle()
        await reporter.flush()

        assert transport.delivered == [[event]]
        await reporter.destroy()


class TestCreateReporter:
    def test_missing_url(self):
        with pytest.raises(ConfigurationError):
            create_reporter(TrackerConfig(storage_type="memory"))

    def test_builds_http_transport(self):
        config = TrackerConfig(
            report_url="https://collect.example.com/e",
            headers={"X-App": "shop"},
            storage_type="memory",
        )

        reporter = create_reporter(config, storage=MemoryStorage())

        assert isinstance(reporter.transport, HttpTransport)
        assert reporter.transport.headers == {"X-App": "shop"}
        assert reporter.scheduler.batch_size == 10
        assert reporter.scheduler.report_interval_seconds == 5.0
        assert reporter.engine.max_retries == 3
        assert reporter.engine.retry_backoff_seconds == 1.0
