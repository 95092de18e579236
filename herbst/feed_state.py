"""
实时数据流生命周期定义。
包含状态枚举、状态转换表、重连退避策略以及提供给界面的状态模型。
"""

import logging
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class FeedKind(str, Enum):
    WEATHER = "weather"
    DOCKER = "docker"
    SYSTEM = "system"


class FeedState(str, Enum):
    DISCONNECTED = "disconnected"  # 初始、已禁用或已关闭
    CONNECTING = "connecting"
    STREAMING = "streaming"  # 连接后至少收到一条有效事件
    RECONNECTING = "reconnecting"  # 等待退避延迟


class FeedEvent(str, Enum):
    CONNECT = "connect"
    FIRST_EVENT = "first_event"
    ERROR = "error"
    TEARDOWN = "teardown"


_TRANSITIONS = {
    FeedState.DISCONNECTED: {
        FeedEvent.CONNECT: FeedState.CONNECTING,
        FeedEvent.TEARDOWN: FeedState.DISCONNECTED,
    },
    FeedState.CONNECTING: {
        FeedEvent.FIRST_EVENT: FeedState.STREAMING,
        FeedEvent.ERROR: FeedState.RECONNECTING,
        FeedEvent.TEARDOWN: FeedState.DISCONNECTED,
    },
    FeedState.STREAMING: {
        FeedEvent.ERROR: FeedState.RECONNECTING,
        FeedEvent.TEARDOWN: FeedState.DISCONNECTED,
    },
    FeedState.RECONNECTING: {
        FeedEvent.CONNECT: FeedState.CONNECTING,
        FeedEvent.TEARDOWN: FeedState.DISCONNECTED,
    },
}


def next_state(state: FeedState, event: FeedEvent) -> Optional[FeedState]:
    """纯状态转换函数，非法转换返回 None。"""
    return _TRANSITIONS.get(state, {}).get(event)


class BackoffPolicy(BaseModel):
    initial: float = Field(default=1.0, gt=0)
    factor: float = Field(default=2.0, ge=1)
    max_delay: float = Field(default=30.0, gt=0)
    max_retries: Optional[int] = None  # None 表示无限重试


class Backoff:
    """Exponential backoff with a capped delay."""

    def __init__(self, policy: BackoffPolicy):
        self.policy = policy
        self.attempts = 0
        self._last_delay: Optional[float] = None

    def next_delay(self) -> Optional[float]:
        """Delay before the next attempt, or None once retries are exhausted."""
        if self.policy.max_retries is not None and self.attempts >= self.policy.max_retries:
            return None
        # 每次在上一次延迟基础上乘以 factor，封顶后不再增长
        if self._last_delay is None:
            delay = self.policy.initial
        else:
            delay = self._last_delay * self.policy.factor
        delay = min(delay, self.policy.max_delay)
        self._last_delay = delay
        self.attempts += 1
        return delay

    def reset(self):
        self.attempts = 0
        self._last_delay = None


class FeedStatus(BaseModel):
    """单个数据流的运行时状态，供界面组件读取。"""
    kind: FeedKind
    enabled: bool = False
    state: FeedState = FeedState.DISCONNECTED
    message: Optional[str] = None
    config_hint: Optional[str] = None  # 配置错误时的提示
    last_event_at: float = 0.0
    reconnect_attempts: int = 0


class FeedLifecycle:
    """保存单个数据流的状态并执行状态转换。"""

    def __init__(self, kind: FeedKind, policy: Optional[BackoffPolicy] = None):
        self.kind = kind
        self.state = FeedState.DISCONNECTED
        self.backoff = Backoff(policy or BackoffPolicy())

    def fire(self, event: FeedEvent) -> FeedState:
        target = next_state(self.state, event)
        if target is None:
            logger.warning(f"[{self.kind.value}] Invalid transition: {self.state.value} --{event.value}-->")
            return self.state
        if target != self.state:
            logger.info(f"[{self.kind.value}] State -> {target.value}")
        if target == FeedState.STREAMING:
            self.backoff.reset()
        self.state = target
        return self.state
