"""Microphone capture backed by aiortc / PyAV."""

import asyncio
import logging

from aiortc import MediaStreamTrack
from aiortc.contrib.media import MediaPlayer
from av import AudioFrame

from linguaroom.config import settings
from linguaroom.rtc.media import LocalStream, MediaDevice, MediaDeviceError

logger = logging.getLogger(__name__)


class MutableAudioTrack(MediaStreamTrack):
    """Wraps a source track; yields silence while ``enabled`` is False."""

    kind = "audio"

    def __init__(self, source: MediaStreamTrack) -> None:
        super().__init__()
        self._source = source
        self.enabled = True

    async def recv(self) -> AudioFrame:
        frame = await self._source.recv()
        if self.enabled:
            return frame
        silence = AudioFrame(format=frame.format.name, layout=frame.layout.name, samples=frame.samples)
        for plane in silence.planes:
            plane.update(bytes(plane.buffer_size))
        silence.pts = frame.pts
        silence.sample_rate = frame.sample_rate
        silence.time_base = frame.time_base
        return silence

    def stop(self) -> None:
        super().stop()
        self._source.stop()


class MicrophoneDevice(MediaDevice):
    """Opens the system microphone through FFmpeg (``MediaPlayer``)."""

    def __init__(
        self,
        file: str | None = None,
        format: str | None = None,
        options: dict[str, str] | None = None,
    ) -> None:
        self._file = file or settings.RTC_MIC_DEVICE
        self._format = format or settings.RTC_MIC_FORMAT
        self._options = options or {}

    async def get_audio_stream(self) -> LocalStream:
        # Opening the device blocks (permission prompt, driver init).
        player = await asyncio.to_thread(MediaPlayer, self._file, format=self._format, options=self._options)
        if player.audio is None:
            if player.video is not None:
                player.video.stop()
            raise MediaDeviceError(f"No audio track on {self._format}:{self._file}")
        logger.debug("Opened microphone %s:%s", self._format, self._file)
        return LocalStream([MutableAudioTrack(player.audio)])
