"""Connectivity tracking and replay of persisted events on reconnect."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Protocol

from .delivery import DeliveryEngine, DeliveryOutcome
from .offline_queue import PersistentQueue


logger = logging.getLogger(__name__)


class ConnectivityState(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"


class ConnectivitySignal(Protocol):
    """Source of online/offline notifications."""

    def is_online(self) -> bool: ...

    def subscribe(self, callback: Callable[[bool], None]) -> None: ...

    def unsubscribe(self, callback: Callable[[bool], None]) -> None: ...


class ManualConnectivity:
    """
    Connectivity signal driven by explicit set_online() calls.

    Hosts wire their own network detection into it; tests flip it directly.
    Listeners are notified on every call, redundant or not.
    """

    def __init__(self, online: bool = True):
        self._online = online
        self._listeners: list[Callable[[bool], None]] = []

    def is_online(self) -> bool:
        return self._online

    def set_online(self, online: bool) -> None:
        self._online = online
        for listener in list(self._listeners):
            try:
                listener(online)
            except Exception as e:
                logger.error(f"Connectivity listener error: {e}")

    def subscribe(self, callback: Callable[[bool], None]) -> None:
        if callback not in self._listeners:
            self._listeners.append(callback)

    def unsubscribe(self, callback: Callable[[bool], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)


class AlwaysOnline(ManualConnectivity):
    """Signal for hosts with no connectivity information."""

    def __init__(self):
        super().__init__(online=True)


@dataclass
class OfflineCoordinator:
    """
    Tracks ONLINE/OFFLINE state and replays persisted events on reconnect.

    While OFFLINE the delivery engine (which reads ``is_online``) persists
    batches without a network attempt. Each OFFLINE -> ONLINE transition
    drains the persisted queue and sends it as one batch; if that fails the
    events are put back in front of anything persisted meanwhile.
    """
    signal: ConnectivitySignal
    engine: DeliveryEngine
    queue: PersistentQueue

    # Internal state
    _state: ConnectivityState = field(default=ConnectivityState.ONLINE, init=False)
    _attached: bool = field(default=False, init=False)
    _loop: asyncio.AbstractEventLoop | None = field(default=None, init=False)
    _replay_task: asyncio.Task | None = field(default=None, init=False)
    _replay_pending: bool = field(default=False, init=False)
    _stats: dict = field(default_factory=dict, init=False)

    def __post_init__(self):
        self._state = self._read_signal()
        self._stats = {
            "transitions": 0,
            "replays": 0,
            "events_replayed": 0,
        }

    def attach(self) -> None:
        """
        Take the current state from the signal and start listening.

        The running loop (if any) is remembered; signals raised on other
        threads are handed over to it.
        """
        if self._attached:
            return
        try:
            self._loop = asyncio.get_running_loop()
        except RuntimeError:
            self._loop = None
        self._state = self._read_signal()
        self.signal.subscribe(self._on_signal)
        self._attached = True
        logger.debug(f"Connectivity coordinator attached ({self._state.value})")

    def detach(self) -> None:
        """Stop listening to the signal."""
        if not self._attached:
            return
        self.signal.unsubscribe(self._on_signal)
        self._attached = False

    def is_online(self) -> bool:
        return self._state is ConnectivityState.ONLINE

    def _read_signal(self) -> ConnectivityState:
        return ConnectivityState.ONLINE if self.signal.is_online() else ConnectivityState.OFFLINE

    def _on_signal(self, online: bool) -> None:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if self._loop is not None and running is not self._loop:
            if self._loop.is_closed():
                logger.warning("Connectivity signal after the event loop closed, ignoring it")
                return
            self._loop.call_soon_threadsafe(self._apply_signal, online)
            return

        self._apply_signal(online)

    def _apply_signal(self, online: bool) -> None:
        if not self._attached:
            return
        new_state = ConnectivityState.ONLINE if online else ConnectivityState.OFFLINE
        if new_state is self._state:
            return

        if new_state is ConnectivityState.ONLINE and not self._can_replay():
            # Stay OFFLINE so the next ONLINE signal is not seen as redundant
            logger.warning("Connectivity restored but no event loop to replay on")
            return

        self._state = new_state
        self._stats["transitions"] += 1
        logger.info(f"Connectivity changed: {new_state.value}")

        if new_state is ConnectivityState.ONLINE:
            self.schedule_replay()

    def _can_replay(self) -> bool:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return False
        return True

    def schedule_replay(self) -> asyncio.Task:
        """Start a replay task, or coalesce into the one already running."""
        if self._replay_task is not None:
            self._replay_pending = True
            return self._replay_task

        self._replay_task = asyncio.get_running_loop().create_task(self._replay_loop())
        return self._replay_task

    async def _replay_loop(self) -> None:
        try:
            while True:
                self._replay_pending = False
                await self.replay()
                if not (self._replay_pending and self.is_online()):
                    break
        except Exception as e:
            logger.error(f"Replay of persisted events failed: {e}")
        finally:
            self._replay_task = None

    async def replay(self) -> DeliveryOutcome | None:
        """
        Drain the persisted queue and send it as one batch.

        Returns None if there was nothing to replay.
        """
        events = self.queue.drain_all()
        if not events:
            return None

        logger.info(f"Replaying {len(events)} persisted events")
        self._stats["replays"] += 1

        outcome = await self.engine.send(events, requeue_front=True)
        if outcome is DeliveryOutcome.DELIVERED:
            self._stats["events_replayed"] += len(events)
        return outcome

    async def wait_replay(self) -> None:
        """Wait for a running replay (if any) to finish."""
        if self._replay_task is not None:
            await asyncio.shield(self._replay_task)

    @property
    def state(self) -> ConnectivityState:
        return self._state

    @property
    def stats(self) -> dict:
        """Get coordinator statistics."""
        return {
            **self._stats,
            "state": self._state.value,
            "replaying": self._replay_task is not None,
        }
