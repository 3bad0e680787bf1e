"""
Local media controller — owns the single microphone capture of a session.

The capture starts muted: the audio track is disabled as soon as it arrives,
and muting only flips ``enabled`` on that track, so remote peers keep the
same track attached and no renegotiation happens.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Protocol

logger = logging.getLogger(__name__)


class MediaTrack(Protocol):
    kind: str
    enabled: bool

    def stop(self) -> None: ...


class LocalStream:
    """A captured stream: the tracks every outgoing connection shares."""

    def __init__(self, tracks: Iterable[MediaTrack]) -> None:
        self._tracks = list(tracks)

    @property
    def tracks(self) -> list[MediaTrack]:
        return list(self._tracks)

    @property
    def audio_tracks(self) -> list[MediaTrack]:
        return [t for t in self._tracks if t.kind == "audio"]

    def stop(self) -> None:
        for track in self._tracks:
            track.stop()


class MediaDeviceError(RuntimeError):
    """The capture device is missing, busy or access was denied."""


class MediaDevice(ABC):
    """Capability to open an audio-only capture stream."""

    @abstractmethod
    async def get_audio_stream(self) -> LocalStream: ...


class LocalMediaController:
    def __init__(self, device: MediaDevice) -> None:
        self._device = device
        self._stream: LocalStream | None = None
        self._stopped = False

    @property
    def stream(self) -> LocalStream | None:
        return self._stream

    @property
    def is_muted(self) -> bool:
        track = self._audio_track()
        return track is None or not track.enabled

    def _audio_track(self) -> MediaTrack | None:
        if self._stream is None:
            return None
        tracks = self._stream.audio_tracks
        return tracks[0] if tracks else None

    async def start(self) -> LocalStream | None:
        """Open the capture device.  Failures leave the session without audio."""
        if self._stopped or self._stream is not None:
            return self._stream
        try:
            stream = await self._device.get_audio_stream()
        except Exception as exc:
            logger.warning("Microphone unavailable, continuing without local audio: %s", exc)
            return None

        if self._stopped:
            # stop() ran while the device was opening; nobody will release this later
            stream.stop()
            return None

        self._stream = stream
        for track in stream.audio_tracks:
            track.enabled = False
        logger.info("Microphone acquired (%d audio track(s), muted)", len(stream.audio_tracks))
        return stream

    def toggle_mute(self) -> bool:
        """Flip the local track's enabled flag.  Returns the new muted state."""
        track = self._audio_track()
        if track is None:
            return True
        track.enabled = not track.enabled
        logger.debug("Local audio %s", "unmuted" if track.enabled else "muted")
        return not track.enabled

    def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        stream, self._stream = self._stream, None
        if stream is not None:
            stream.stop()
            logger.info("Microphone released")
