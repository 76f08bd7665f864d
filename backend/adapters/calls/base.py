"""
Call provider contract.

Purpose:
- Create and drive one real-time voice session at a time.
- Report lifecycle facts (started / ended / error) to registered listeners.

Rules:
- No state machine here; the CallSessionController owns session state.
- No retries.
- Listeners are typed async callbacks registered per event; the provider
  awaits each one in registration order.
- Vendor exceptions are translated to ProviderError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable


class CallProviderEvent(str, Enum):
    """Lifecycle notifications emitted by a provider."""

    STARTED = "started"
    ENDED = "ended"
    ERROR = "error"


# detail is the error reason for ERROR, None otherwise
ProviderListener = Callable[[str | None], Awaitable[None]]

# Receives agent audio (PCM16) from the realtime leg
AudioSink = Callable[[bytes], Awaitable[None]]


@dataclass(frozen=True)
class CallSessionToken:
    """Credentials returned by session creation."""
    token: str
    session_id: str


@dataclass(frozen=True)
class CallStartParams:
    """Parameters for starting the realtime leg of a session."""
    token: str
    session_id: str
    sample_rate: int
    enable_update: bool = True


class CallProvider(ABC):
    """
    Abstract base class for real-time voice providers.

    Owns the listener registry; subclasses call `_emit()` when the vendor
    reports a lifecycle change.
    """

    def __init__(self) -> None:
        self._listeners: dict[CallProviderEvent, list[ProviderListener]] = {
            event: [] for event in CallProviderEvent
        }

    # ------------------------------------------------------------------
    # Subscription
    # ------------------------------------------------------------------

    def on(self, event: CallProviderEvent, listener: ProviderListener) -> None:
        """Register a listener. Registering the same callable twice is a no-op."""
        listeners = self._listeners[event]
        if listener not in listeners:
            listeners.append(listener)

    def off(self, event: CallProviderEvent, listener: ProviderListener) -> None:
        """Deregister a listener. Unknown listeners are ignored."""
        listeners = self._listeners[event]
        if listener in listeners:
            listeners.remove(listener)

    def listener_count(self, event: CallProviderEvent) -> int:
        return len(self._listeners[event])

    async def _emit(self, event: CallProviderEvent, detail: str | None = None) -> None:
        # Copy: a listener may deregister while we iterate
        for listener in list(self._listeners[event]):
            await listener(detail)

    # ------------------------------------------------------------------
    # Session control
    # ------------------------------------------------------------------

    @abstractmethod
    async def create_session(self, agent_id: str) -> CallSessionToken:
        """
        Ask the provider for a new session for an agent.

        Raises:
            ProviderError on transport failure or a malformed response.
        """
        raise NotImplementedError

    @abstractmethod
    async def start(self, params: CallStartParams) -> None:
        """
        Start the realtime session.

        Raises:
            ProviderError if the session cannot be started.
        """
        raise NotImplementedError

    @abstractmethod
    async def stop(self) -> None:
        """
        Stop the realtime session.

        Contract:
        - Idempotent: a no-op when no session is running.

        Raises:
            ProviderError if teardown fails.
        """
        raise NotImplementedError

    async def send_audio(self, pcm_bytes: bytes) -> None:
        """Forward caller audio into the running call. Default: dropped."""
        return None
