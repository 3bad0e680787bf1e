"""Peer connection contract used by the peer manager.

A connection is created knowing whether it initiates the handshake.  It
reports three things back through callbacks bound by its owner: a local
signal ready to send to the remote side, a remote stream arriving, and a
fatal failure.  Signals are opaque to everything but the connection.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from linguaroom.rtc.media import LocalStream

logger = logging.getLogger(__name__)


@dataclass
class RemoteStream:
    """Media received from a remote peer."""

    id: str
    tracks: list[Any] = field(default_factory=list)


SignalCallback = Callable[[Any], None]
StreamCallback = Callable[[RemoteStream], None]
FailureCallback = Callable[[Exception], None]


class PeerConnection(ABC):
    def __init__(self, initiator: bool, stream: LocalStream | None = None) -> None:
        self.initiator = initiator
        self.local_stream = stream
        self.closed = False
        self._on_signal: SignalCallback | None = None
        self._on_stream: StreamCallback | None = None
        self._on_failure: FailureCallback | None = None

    def bind(
        self,
        on_signal: SignalCallback,
        on_stream: StreamCallback,
        on_failure: FailureCallback | None = None,
    ) -> None:
        self._on_signal = on_signal
        self._on_stream = on_stream
        self._on_failure = on_failure

    @abstractmethod
    def start(self) -> None:
        """Begin negotiating.  Only the initiating side produces an offer here."""

    @abstractmethod
    def signal(self, data: Any) -> None:
        """Feed a signal received from the remote side."""

    @abstractmethod
    async def close(self) -> None:
        """Release the connection.  Safe to call more than once."""

    # Subclasses report through these; nothing is emitted once closed.

    def _emit_signal(self, data: Any) -> None:
        if not self.closed and self._on_signal is not None:
            self._on_signal(data)

    def _emit_stream(self, stream: RemoteStream) -> None:
        if not self.closed and self._on_stream is not None:
            self._on_stream(stream)

    def _emit_failure(self, exc: Exception) -> None:
        if self.closed:
            return
        if self._on_failure is not None:
            self._on_failure(exc)
        else:
            logger.warning("Peer connection failed: %s", exc)


ConnectionFactory = Callable[[bool, LocalStream | None], PeerConnection]
