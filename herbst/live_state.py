"""
实时组件状态：每个启用的数据流各自订阅推送流，保存当前天气、容器集合和系统指标。

每个数据流运行在独立的 asyncio 任务中并持有自己的通道，一个数据流的重连不会阻塞其他数据流。
没有任何数据流启用时，只打开一个控制通道接收 ``reload`` 通知。
所有修改都发生在事件循环内，读取方通过 ``snapshot()`` 获得副本。
"""

import asyncio
import json
import logging
import time
from contextlib import aclosing
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from herbst.config_schema import (
    DockerContainer,
    HerbstConfig,
    SystemStats,
    WeatherConfig,
    WeatherData,
    WireModel,
)
from herbst.errors import ChannelError, WeatherConfigError
from herbst.events import EventChannel, ServerEvent
from herbst.feed_state import (
    Backoff,
    BackoffPolicy,
    FeedEvent,
    FeedKind,
    FeedLifecycle,
    FeedState,
    FeedStatus,
)

logger = logging.getLogger(__name__)

RELOAD_EVENT = "reload"

WEATHER_CONFIG_HINT = (
    "Weather is enabled but has no location. Set weather.location "
    "(e.g. \"London,GB\") or valid weather.lat / weather.lon."
)

# kind 为 None 时表示控制通道
ChannelFactory = Callable[[Optional[FeedKind]], EventChannel]
Listener = Callable[["LiveSnapshot"], None]


class DockerUpdate(WireModel):
    """Either a full container list, or changes keyed by container id."""
    containers: Optional[List[DockerContainer]] = None
    changed: List[DockerContainer] = Field(default_factory=list)
    removed: List[str] = Field(default_factory=list)


class LiveSnapshot(BaseModel):
    """Read-only copy of the live state. ``None`` means absent (feed disabled or no data yet)."""
    weather: Optional[WeatherData] = None
    containers: Optional[Dict[str, DockerContainer]] = None
    system: Optional[SystemStats] = None
    feeds: Dict[FeedKind, FeedStatus] = Field(default_factory=dict)
    reload_requested: bool = False


def check_weather_config(weather: WeatherConfig):
    """Raise WeatherConfigError if an enabled weather section cannot be located."""
    if weather.enabled and not weather.has_valid_location():
        raise WeatherConfigError(
            f"weather enabled without location or valid coordinates "
            f"(location={weather.location!r}, lat={weather.lat}, lon={weather.lon})"
        )


def parse_docker_update(payload: Any) -> DockerUpdate:
    if isinstance(payload, list):
        return DockerUpdate(containers=payload)
    return DockerUpdate.model_validate(payload)


class LiveStateStore:
    """Owns all live widget state and the lifecycle of every feed."""

    def __init__(
        self,
        config: HerbstConfig,
        channel_factory: ChannelFactory,
        policy: Optional[BackoffPolicy] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._config = config
        self._channel_factory = channel_factory
        self._sleep = sleep
        self._policy = policy or BackoffPolicy()

        self._lifecycles = {kind: FeedLifecycle(kind, policy) for kind in FeedKind}
        self._status = {
            kind: FeedStatus(kind=kind, enabled=self.is_enabled(kind)) for kind in FeedKind
        }

        self._weather: Optional[WeatherData] = None
        self._containers: Optional[Dict[str, DockerContainer]] = None
        self._system: Optional[SystemStats] = None
        self._reload_requested = False

        self._tasks: Dict[FeedKind, asyncio.Task] = {}
        self._control_task: Optional[asyncio.Task] = None
        self._listeners: List[Listener] = []
        self._notify_pending = False

    def is_enabled(self, kind: FeedKind) -> bool:
        section = getattr(self._config, kind.value)
        return section.enabled

    # ── 生命周期 ────────────────────────────────────

    async def start(self):
        """
        Spawn one task per enabled, correctly configured feed.

        When no feed task runs, a single control channel is opened instead so
        that ``reload`` notifications still arrive.
        """
        if self._tasks or self._control_task is not None:
            return

        for kind in FeedKind:
            if not self.is_enabled(kind):
                logger.debug(f"[{kind.value}] Disabled, not connecting")
                continue

            if kind == FeedKind.WEATHER:
                try:
                    check_weather_config(self._config.weather)
                except WeatherConfigError as e:
                    logger.warning(f"[{kind.value}] {e}")
                    status = self._status[kind]
                    status.message = str(e)
                    status.config_hint = WEATHER_CONFIG_HINT
                    continue

            task = asyncio.create_task(self._run_feed(kind), name=f"herbst-feed-{kind.value}")
            task.add_done_callback(self._on_feed_done)
            self._tasks[kind] = task

        if not self._tasks:
            self._control_task = asyncio.create_task(self._run_control(), name="herbst-control")
            self._control_task.add_done_callback(self._on_feed_done)

        logger.info(f"Live state started: {[k.value for k in self._tasks] or ['control']}")

    async def stop(self):
        """Tear down every channel and cancel pending reconnect timers."""
        tasks = list(self._tasks.values())
        if self._control_task is not None:
            tasks.append(self._control_task)
            self._control_task = None
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        for kind in FeedKind:
            self._transition(kind, FeedEvent.TEARDOWN)
        logger.info("Live state stopped")

    async def wait(self):
        """Wait until every feed task has ended (retries exhausted or stopped)."""
        tasks = list(self._tasks.values())
        if self._control_task is not None:
            tasks.append(self._control_task)
        await asyncio.gather(*tasks, return_exceptions=True)

    def _on_feed_done(self, task: asyncio.Task):
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        kind = next((k for k, t in self._tasks.items() if t is task), None)
        logger.error(f"Feed task {task.get_name()} crashed: {exc!r}", exc_info=exc)
        if kind is not None:
            self._status[kind].message = f"feed crashed: {exc!r}"
            self._transition(kind, FeedEvent.TEARDOWN)

    async def _run_feed(self, kind: FeedKind):
        lifecycle = self._lifecycles[kind]
        status = self._status[kind]

        while True:
            self._transition(kind, FeedEvent.CONNECT)
            channel = self._channel_factory(kind)
            try:
                async with aclosing(channel.messages()) as messages:
                    async for message in messages:
                        self._handle_message(kind, message)
            except ChannelError as e:
                reason = str(e)
            else:
                reason = "stream closed by server"

            logger.warning(f"[{kind.value}] Channel lost: {reason}")
            status.message = reason
            self._transition(kind, FeedEvent.ERROR)

            delay = lifecycle.backoff.next_delay()
            if delay is None:
                status.message = (
                    f"giving up after {lifecycle.backoff.attempts} reconnect attempts: {reason}"
                )
                logger.error(f"[{kind.value}] {status.message}")
                self._transition(kind, FeedEvent.TEARDOWN)
                return

            status.reconnect_attempts = lifecycle.backoff.attempts
            logger.info(f"[{kind.value}] Reconnecting in {delay:.1f}s (attempt {lifecycle.backoff.attempts})")
            await self._sleep(delay)

    async def _run_control(self):
        """Reconnect loop for the control channel; only ``reload`` is acted on."""
        backoff = Backoff(self._policy)

        while True:
            channel = self._channel_factory(None)
            try:
                async with aclosing(channel.messages()) as messages:
                    async for message in messages:
                        backoff.reset()
                        if message.event == RELOAD_EVENT:
                            self._request_reload()
            except ChannelError as e:
                reason = str(e)
            else:
                reason = "stream closed by server"

            logger.warning(f"[control] Channel lost: {reason}")
            delay = backoff.next_delay()
            if delay is None:
                logger.error(f"[control] giving up after {backoff.attempts} reconnect attempts: {reason}")
                return
            logger.info(f"[control] Reconnecting in {delay:.1f}s (attempt {backoff.attempts})")
            await self._sleep(delay)

    def _transition(self, kind: FeedKind, event: FeedEvent):
        lifecycle = self._lifecycles[kind]
        before = lifecycle.state
        after = lifecycle.fire(event)
        status = self._status[kind]
        status.state = after
        status.reconnect_attempts = lifecycle.backoff.attempts
        if after != before:
            self._schedule_notify()

    # ── 事件应用 ────────────────────────────────────

    def _handle_message(self, kind: FeedKind, message: ServerEvent):
        if message.event == RELOAD_EVENT:
            self._request_reload()
            return

        if message.event != kind.value:
            return

        try:
            payload = json.loads(message.data)
            self.apply_event(kind, payload)
        except (ValueError, ValidationError) as e:
            logger.warning(f"[{kind.value}] Ignoring invalid event: {e}")
            return

        if self._lifecycles[kind].state == FeedState.CONNECTING:
            self._transition(kind, FeedEvent.FIRST_EVENT)
            self._status[kind].message = None

    def _request_reload(self):
        if not self._reload_requested:
            logger.info("Server configuration changed, reload requested")
            self._reload_requested = True
            self._schedule_notify()

    def apply_event(self, kind: FeedKind, payload: Any):
        """
        Apply one decoded event payload to the live state.

        Weather and system payloads replace the current value; docker payloads
        replace or merge into the container mapping.

        Raises:
            pydantic.ValidationError: payload does not match the live-data shape
        """
        if not self.is_enabled(kind):
            logger.debug(f"[{kind.value}] Dropping event for disabled feed")
            return

        if kind == FeedKind.WEATHER:
            self._weather = WeatherData.model_validate(payload)
        elif kind == FeedKind.SYSTEM:
            self._system = SystemStats.model_validate(payload)
        elif kind == FeedKind.DOCKER:
            self._apply_docker(parse_docker_update(payload))

        self._status[kind].last_event_at = time.time()
        self._schedule_notify()

    def _apply_docker(self, update: DockerUpdate):
        if update.containers is not None:
            containers = {c.id: c for c in update.containers}
        else:
            containers = dict(self._containers or {})

        for container in update.changed:
            containers[container.id] = container
        for container_id in update.removed:
            containers.pop(container_id, None)

        self._containers = containers

    # ── 读取 ────────────────────────────────────

    def status(self, kind: FeedKind) -> FeedStatus:
        return self._status[kind].model_copy()

    def snapshot(self) -> LiveSnapshot:
        return LiveSnapshot(
            weather=self._weather,
            containers=dict(self._containers) if self._containers is not None else None,
            system=self._system,
            feeds={kind: status.model_copy() for kind, status in self._status.items()},
            reload_requested=self._reload_requested,
        )

    # ── 变更通知 ────────────────────────────────────

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _schedule_notify(self):
        """Coalesce all changes made within one loop iteration into one notification."""
        if not self._listeners or self._notify_pending:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._notify()
            return
        self._notify_pending = True
        loop.call_soon(self._notify)

    def _notify(self):
        self._notify_pending = False
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"Live state listener failed: {e}", exc_info=True)
