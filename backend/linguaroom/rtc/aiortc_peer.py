"""aiortc-backed peer connection.

ICE is not trickled: ``setLocalDescription`` waits for candidate gathering,
so the single ``{"type", "sdp"}`` signal sent to the remote side already
carries every candidate.
"""

import asyncio
import logging
from typing import Any

from aiortc import RTCConfiguration, RTCIceServer, RTCPeerConnection, RTCSessionDescription

from linguaroom.config import settings
from linguaroom.rtc.connection import PeerConnection, RemoteStream
from linguaroom.rtc.media import LocalStream

logger = logging.getLogger(__name__)


class AiortcPeerConnection(PeerConnection):
    def __init__(
        self,
        initiator: bool,
        stream: LocalStream | None = None,
        ice_servers: list[str] | None = None,
    ) -> None:
        super().__init__(initiator, stream)
        urls = settings.RTC_ICE_SERVERS if ice_servers is None else ice_servers
        configuration = RTCConfiguration(iceServers=[RTCIceServer(urls=url) for url in urls]) if urls else None
        self._pc = RTCPeerConnection(configuration=configuration)
        self._tasks: set[asyncio.Task] = set()

        if stream is not None and stream.audio_tracks:
            for track in stream.audio_tracks:
                self._pc.addTrack(track)
        else:
            # Still ask for the remote side's audio when we have nothing to send.
            self._pc.addTransceiver("audio", direction="recvonly")

        self._pc.on("track", self._handle_track)
        self._pc.on("connectionstatechange", self._handle_state_change)

    # ------------------------------------------------------------------
    # aiortc events
    # ------------------------------------------------------------------

    def _handle_track(self, track) -> None:
        if track.kind != "audio":
            return
        self._emit_stream(RemoteStream(id=track.id, tracks=[track]))

    async def _handle_state_change(self) -> None:
        state = self._pc.connectionState
        logger.debug("Peer connection state -> %s", state)
        if state == "failed":
            self._emit_failure(ConnectionError("ICE/DTLS negotiation failed"))

    # ------------------------------------------------------------------
    # Handshake
    # ------------------------------------------------------------------

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Peer handshake step failed: %s", exc)
            self._emit_failure(exc)

    def start(self) -> None:
        if self.initiator and not self.closed:
            self._spawn(self._send_offer())

    def signal(self, data: Any) -> None:
        if self.closed:
            return
        self._spawn(self._apply_signal(data))

    async def _send_offer(self) -> None:
        offer = await self._pc.createOffer()
        await self._pc.setLocalDescription(offer)
        self._emit_local_description()

    async def _apply_signal(self, data: Any) -> None:
        if not isinstance(data, dict) or "sdp" not in data or "type" not in data:
            logger.warning("Ignoring malformed signal: %r", data)
            return
        description = RTCSessionDescription(sdp=data["sdp"], type=data["type"])

        if description.type == "offer" and not self.initiator:
            await self._pc.setRemoteDescription(description)
            answer = await self._pc.createAnswer()
            await self._pc.setLocalDescription(answer)
            self._emit_local_description()
        elif description.type == "answer" and self.initiator and self._pc.signalingState == "have-local-offer":
            await self._pc.setRemoteDescription(description)
        else:
            logger.info(
                "Dropping %s signal (initiator=%s, state=%s)",
                description.type,
                self.initiator,
                self._pc.signalingState,
            )

    def _emit_local_description(self) -> None:
        local = self._pc.localDescription
        if local is not None:
            self._emit_signal({"type": local.type, "sdp": local.sdp})

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        for task in list(self._tasks):
            task.cancel()
        await self._pc.close()
