"""
Codec helpers for the audio pipeline.

- Opus frame size and bitrate derivation from configuration strings
- ``PcmResampler``: s16 stereo PCM rate conversion with PyAV
- ``OpusFrameEncoder``: fixed-size frame encoding with discord.py's libopus
  binding
- ``iter_ogg_packets``: incremental Ogg demuxing of a transcoder's stdout
"""

import asyncio
import io
import re
from typing import AsyncIterator, List, Optional, Union

import av
from av.error import FFmpegError
import discord
from discord.oggparse import OggError, OggPage

from discord_connect_receiver.infrastructure import PipelineError

# Discord voice runs at 48 kHz stereo.
TRANSPORT_SAMPLE_RATE = 48000
CHANNELS = 2
SAMPLE_WIDTH = 2

ALLOWED_FRAME_DURATIONS = (2.5, 5, 10, 20, 40, 60)
DEFAULT_FRAME_DURATION = 20
DEFAULT_BITRATE = 160000

OGG_HEADER_SIZE = 27
OPUS_HEADER_PACKETS = (b"OpusHead", b"OpusTags")

_BITRATE_RE = re.compile(r"^(\d+)\s*(k?)$")


def frame_duration(requested: Union[float, str, None]) -> float:
    """Return ``requested`` if it is a standard Opus frame duration, else 20 ms."""
    try:
        value = float(requested)
    except (TypeError, ValueError):
        return DEFAULT_FRAME_DURATION
    if value in ALLOWED_FRAME_DURATIONS:
        return value
    return DEFAULT_FRAME_DURATION


def frame_size(rate: int = TRANSPORT_SAMPLE_RATE, duration_ms=DEFAULT_FRAME_DURATION) -> int:
    """Samples per channel in one Opus frame (960 for 48 kHz / 20 ms)."""
    return int(round(rate * frame_duration(duration_ms) / 1000))


def parse_bitrate(value: Optional[str]) -> int:
    """
    Parse a bitrate such as ``"160k"`` into bits per second.

    Plain digits are taken as bits per second. Missing, malformed or zero
    values give the 160 kb/s default.
    """
    if value is None:
        return DEFAULT_BITRATE
    match = _BITRATE_RE.match(str(value).strip().lower())
    if not match:
        return DEFAULT_BITRATE
    bitrate = int(match.group(1)) * (1000 if match.group(2) else 1)
    return bitrate or DEFAULT_BITRATE


class PcmResampler:
    """Converts interleaved s16 PCM from ``input_rate`` to ``output_rate``."""

    def __init__(
        self,
        input_rate: int,
        output_rate: int = TRANSPORT_SAMPLE_RATE,
        channels: int = CHANNELS,
    ):
        self.input_rate = input_rate
        self.output_rate = output_rate
        self.layout = "stereo" if channels == 2 else "mono"
        self._frame_bytes = channels * SAMPLE_WIDTH
        self._remainder = b""
        self._resampler = av.AudioResampler(
            format="s16", layout=self.layout, rate=output_rate
        )

    def resample(self, pcm: bytes) -> bytes:
        """Resample a chunk; partial samples are carried to the next call."""
        data = self._remainder + pcm
        usable = len(data) - len(data) % self._frame_bytes
        self._remainder = data[usable:]
        if not usable:
            return b""

        frame = av.AudioFrame(
            format="s16", layout=self.layout, samples=usable // self._frame_bytes
        )
        frame.sample_rate = self.input_rate
        frame.planes[0].update(data[:usable])

        out = bytearray()
        try:
            for out_frame in self._resampler.resample(frame):
                expected = out_frame.samples * self._frame_bytes
                out += bytes(out_frame.planes[0])[:expected]
        except FFmpegError as e:
            raise PipelineError(f"Resampling failed: {e}") from e
        return bytes(out)


class OpusFrameEncoder:
    """Buffers 48 kHz stereo PCM and encodes it in fixed-size Opus frames."""

    def __init__(self, duration_ms=DEFAULT_FRAME_DURATION, bitrate: int = DEFAULT_BITRATE):
        self.duration_ms = frame_duration(duration_ms)
        self.frame_size = frame_size(TRANSPORT_SAMPLE_RATE, self.duration_ms)
        self.frame_bytes = self.frame_size * CHANNELS * SAMPLE_WIDTH
        self.bitrate = bitrate
        self._pending = bytearray()
        try:
            self._encoder = discord.opus.Encoder()
        except discord.opus.OpusNotLoaded as e:
            raise PipelineError(
                "libopus could not be loaded; install libopus for the native pipeline"
            ) from e
        # discord.py takes kb/s
        self._encoder.set_bitrate(bitrate // 1000)

    def encode(self, pcm: bytes) -> List[bytes]:
        """Encode every complete frame buffered so far."""
        self._pending += pcm
        packets = []
        while len(self._pending) >= self.frame_bytes:
            chunk = bytes(self._pending[: self.frame_bytes])
            del self._pending[: self.frame_bytes]
            try:
                packets.append(self._encoder.encode(chunk, self.frame_size))
            except discord.opus.OpusError as e:
                raise PipelineError(f"Opus encoding failed: {e}") from e
        return packets


async def iter_ogg_packets(reader: asyncio.StreamReader) -> AsyncIterator[bytes]:
    """
    Yield Opus packets from an Ogg stream as pages arrive.

    The OpusHead/OpusTags header packets are skipped. Ends quietly when the
    stream ends, mid-page included.
    """
    partial = b""
    while True:
        try:
            header = await reader.readexactly(OGG_HEADER_SIZE)
            if header[:4] != b"OggS":
                raise PipelineError("invalid Ogg page magic in transcoder output")
            segtable = await reader.readexactly(header[26])
            body = await reader.readexactly(sum(segtable))
        except asyncio.IncompleteReadError:
            return

        try:
            page = OggPage(io.BytesIO(header[4:] + segtable + body))
        except OggError as e:
            raise PipelineError(f"bad Ogg page in transcoder output: {e}") from e

        for data, complete in page.iter_packets():
            partial += data
            if not complete:
                continue
            packet, partial = partial, b""
            if packet.startswith(OPUS_HEADER_PACKETS):
                continue
            yield packet
