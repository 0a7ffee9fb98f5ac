"""
Audio pipelines turning FIFO PCM into Opus packets for discord.py.

Two interchangeable chains are available, selected once from configuration:

- ``NativeChain``: FIFO reader -> PyAV resampler -> libopus encoder, all in
  process on the event loop.
- ``ExternalChain``: a single ffmpeg process reads the FIFO and writes
  Ogg/Opus to stdout, which is demuxed into packets.

Both feed one :class:`PacketBuffer` and hand the player the same
:class:`PipelineAudioSource` for their whole lifetime. When the FIFO writer
goes away (librespot paused, seeking or restarting) the reading stage ends
and the chain is rebuilt after a short delay while the source plays silence.
"""

import asyncio
import logging
import os
import shutil
from typing import List, Optional

from discord_connect_receiver.audio import (
    OpusFrameEncoder,
    PacketBuffer,
    PcmResampler,
    PipelineAudioSource,
    iter_ogg_packets,
    parse_bitrate,
)
from discord_connect_receiver.audio.codec import CHANNELS, TRANSPORT_SAMPLE_RATE
from discord_connect_receiver.config.settings import (
    PIPELINE_FFMPEG,
    PIPELINE_NATIVE,
    ReceiverConfig,
)
from discord_connect_receiver.infrastructure import (
    ConfigError,
    PipelineError,
    ReceiverError,
    relay_lines,
    setup_logging,
)

from .respawn import RespawnPolicy

logger = setup_logging("audio_pipeline")
ffmpeg_logger = logging.getLogger("ffmpeg")

# Seconds a replacement waits for the previous stage to release the FIFO.
STAGE_CLOSE_TIMEOUT = 2.0


class AudioPipeline:
    """
    Base class for a replaceable FIFO -> Opus chain.

    Subclasses implement ``_build_stages`` and ``_teardown_stages``. Stage
    callbacks carry the generation they were built in; events from a torn
    down generation are ignored.
    """

    mode = ""

    def __init__(self, config: ReceiverConfig, respawn_delay: float):
        self.config = config
        self.packet_buffer = PacketBuffer()
        self.source: Optional[PipelineAudioSource] = None
        self.pipe_path: Optional[str] = None
        self.keep_alive = False
        self.policy = RespawnPolicy(respawn_delay, name=f"{self.mode}-pipeline")
        self.spawn_count = 0
        self._generation = 0
        self._spawning = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def spawning(self) -> bool:
        return self._spawning

    async def spawn(self, pipe_path: str) -> PipelineAudioSource:
        """
        Attach a fresh chain to ``pipe_path`` and return the playable source.

        Any previous chain is torn down before the new one opens the pipe.

        Raises:
            PipelineError: a spawn is already in flight, the pipeline was
                closed, or a stage could not be built
            ConfigError: the external transcoder binary was not found
        """
        if self._closed:
            raise PipelineError("Pipeline has been closed")
        if self._spawning:
            raise PipelineError("Pipeline spawn already in progress")

        self._spawning = True
        try:
            self.teardown()
            await self._wait_stages_closed()
            if self._closed:
                raise PipelineError("Pipeline was stopped while spawning")
            self.pipe_path = pipe_path
            self.keep_alive = True
            generation = self._generation
            await self._build_stages(pipe_path, generation)
            if self._closed or generation != self._generation:
                # Torn down while the stages were being built.
                self._teardown_stages()
                raise PipelineError("Pipeline was stopped while spawning")
            self.spawn_count += 1
        finally:
            self._spawning = False

        if self.source is None:
            self.source = PipelineAudioSource(self.packet_buffer)
        logger.info(f"{self.mode} pipeline attached to {pipe_path}")
        return self.source

    def teardown(self) -> None:
        """Destroy the current stages and cancel any pending respawn. Idempotent."""
        self.policy.cancel()
        self._generation += 1
        try:
            self._teardown_stages()
        except Exception as e:
            logger.debug(f"Error during {self.mode} pipeline teardown: {e}")

    def close(self) -> None:
        """Stop for good: no respawn, stages destroyed, stream finished."""
        self.keep_alive = False
        self.teardown()
        self._closed = True
        if self.source is not None:
            self.source.finish()
        self.packet_buffer.clear()

    def _stage_ended(self, generation: int, reason: str) -> None:
        if generation != self._generation or not self.keep_alive or self._closed:
            return
        if self.policy.schedule(self._respawn):
            logger.debug(
                f"{self.mode} pipeline {reason}; respawning in {self.policy.current_delay:.2f}s"
            )

    async def _respawn(self) -> None:
        if not self.keep_alive or self._closed or self.pipe_path is None:
            return
        try:
            await self.spawn(self.pipe_path)
        except ConfigError as e:
            logger.error(f"Not respawning {self.mode} pipeline: {e}")
        except ReceiverError as e:
            logger.warning(f"{self.mode} pipeline respawn failed: {e}")
            if self.keep_alive and not self._closed:
                self.policy.schedule(self._respawn)

    async def _build_stages(self, pipe_path: str, generation: int) -> None:
        raise NotImplementedError

    def _teardown_stages(self) -> None:
        raise NotImplementedError

    async def _wait_stages_closed(self) -> None:
        """Wait until torn down stages have released the pipe."""

    def get_status(self) -> dict:
        return {
            "mode": self.mode,
            "keep_alive": self.keep_alive,
            "pipe_path": self.pipe_path,
            "spawn_count": self.spawn_count,
            "respawn_pending": self.policy.pending,
            "buffer": self.packet_buffer.get_stats(),
        }


class PipeReaderProtocol(asyncio.Protocol):
    """Reads FIFO PCM, resamples and encodes it into the packet buffer."""

    def __init__(
        self,
        pipeline: "NativeChain",
        generation: int,
        resampler: PcmResampler,
        encoder: OpusFrameEncoder,
    ):
        self.pipeline = pipeline
        self.generation = generation
        self.resampler = resampler
        self.encoder = encoder
        self.transport: Optional[asyncio.ReadTransport] = None
        self._resume_task: Optional[asyncio.Task] = None
        # Set in connection_lost; the descriptor is closed before awaiters resume.
        self.closed = asyncio.get_running_loop().create_future()

    def connection_made(self, transport):
        self.transport = transport

    def data_received(self, data: bytes) -> None:
        buffer = self.pipeline.packet_buffer
        try:
            for packet in self.encoder.encode(self.resampler.resample(data)):
                buffer.put(packet)
        except PipelineError as e:
            logger.error(f"Native pipeline stage error: {e}")
            self.transport.close()
            return

        if buffer.is_full() and self._resume_task is None:
            self.transport.pause_reading()
            self._resume_task = asyncio.create_task(self._resume_when_drained())

    async def _resume_when_drained(self) -> None:
        await self.pipeline.packet_buffer.wait_drained()
        self._resume_task = None
        if self.transport is not None and not self.transport.is_closing():
            self.transport.resume_reading()

    def eof_received(self):
        self.pipeline._stage_ended(self.generation, "reached end of stream")
        return None

    def connection_lost(self, exc: Optional[Exception]) -> None:
        if exc is not None:
            logger.warning(f"FIFO reader error: {exc}")
        self.pipeline._stage_ended(self.generation, "closed")
        if not self.closed.done():
            self.closed.set_result(None)

    def destroy(self) -> None:
        if self._resume_task is not None:
            self._resume_task.cancel()
            self._resume_task = None
        if self.transport is not None:
            self.transport.close()


class NativeChain(AudioPipeline):
    """In-process FIFO reader -> resampler -> Opus encoder."""

    mode = PIPELINE_NATIVE

    def __init__(self, config: ReceiverConfig):
        super().__init__(config, respawn_delay=config.native_respawn_delay)
        self._protocol: Optional[PipeReaderProtocol] = None
        self._closing: List[asyncio.Future] = []

    def _create_stages(self):
        resampler = PcmResampler(
            input_rate=self.config.source_sample_rate,
            output_rate=TRANSPORT_SAMPLE_RATE,
            channels=CHANNELS,
        )
        encoder = OpusFrameEncoder(
            duration_ms=self.config.frame_duration_ms,
            bitrate=parse_bitrate(self.config.opus_bitrate),
        )
        return resampler, encoder

    async def _build_stages(self, pipe_path: str, generation: int) -> None:
        resampler, encoder = self._create_stages()

        # Non-blocking open: no wait for a writer, readable once one writes.
        try:
            fd = os.open(pipe_path, os.O_RDONLY | os.O_NONBLOCK)
        except OSError as e:
            raise PipelineError(f"Failed to open FIFO {pipe_path}: {e}") from e
        pipe = os.fdopen(fd, "rb", buffering=0)

        loop = asyncio.get_running_loop()
        try:
            _, protocol = await loop.connect_read_pipe(
                lambda: PipeReaderProtocol(self, generation, resampler, encoder),
                pipe,
            )
        except (OSError, ValueError) as e:
            pipe.close()
            raise PipelineError(f"Failed to attach FIFO reader: {e}") from e

        self._protocol = protocol

    def _teardown_stages(self) -> None:
        protocol, self._protocol = self._protocol, None
        if protocol is not None:
            try:
                protocol.destroy()
            except Exception as e:
                logger.debug(f"Error closing FIFO reader: {e}")
            self._closing.append(protocol.closed)

    async def _wait_stages_closed(self) -> None:
        closing, self._closing = self._closing, []
        pending = [future for future in closing if not future.done()]
        if pending:
            await asyncio.wait(pending, timeout=STAGE_CLOSE_TIMEOUT)


class ExternalChain(AudioPipeline):
    """ffmpeg reads the FIFO and writes Ogg/Opus to stdout."""

    mode = PIPELINE_FFMPEG

    def __init__(self, config: ReceiverConfig):
        super().__init__(config, respawn_delay=config.ffmpeg_respawn_delay)
        self.process: Optional[asyncio.subprocess.Process] = None
        self._tasks: List[asyncio.Task] = []
        self._exiting: List[asyncio.subprocess.Process] = []

    def resolve_binary(self) -> Optional[str]:
        if self.config.ffmpeg_path and os.path.exists(self.config.ffmpeg_path):
            return self.config.ffmpeg_path
        return shutil.which("ffmpeg")

    def build_args(self, binary: str, pipe_path: str) -> List[str]:
        return [
            binary,
            "-hide_banner", "-loglevel", self.config.ffmpeg_loglevel,
            # Low-latency input
            "-fflags", "nobuffer",
            "-flags", "low_delay",
            "-f", "s16le",
            "-ar", str(self.config.source_sample_rate),
            "-ac", str(CHANNELS),
            "-i", pipe_path,
            "-ar", str(TRANSPORT_SAMPLE_RATE),
            "-ac", str(CHANNELS),
            "-vn",
            "-acodec", "libopus",
            "-application", self.config.ffmpeg_opus_application,
            "-frame_duration", str(self.config.ffmpeg_frame_duration),
            "-b:a", str(parse_bitrate(self.config.opus_bitrate)),
            # Flush every packet immediately
            "-flush_packets", "1",
            "-max_delay", "0",
            "-f", "ogg",
            "pipe:1",
        ]

    async def _build_stages(self, pipe_path: str, generation: int) -> None:
        binary = self.resolve_binary()
        if not binary:
            raise ConfigError(
                "ffmpeg not found. Install ffmpeg or set FFMPEG_PATH."
            )

        try:
            process = await asyncio.create_subprocess_exec(
                *self.build_args(binary, pipe_path),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise PipelineError(f"Failed to start ffmpeg: {e}") from e

        self.process = process
        logger.debug(f"Started ffmpeg (PID: {process.pid}) reading {pipe_path}")
        self._tasks = [
            asyncio.create_task(self._read_packets(process, generation)),
            asyncio.create_task(relay_lines(process.stderr, ffmpeg_logger, logging.DEBUG)),
            asyncio.create_task(self._watch_exit(process, generation)),
        ]

    async def _read_packets(self, process: asyncio.subprocess.Process, generation: int) -> None:
        buffer = self.packet_buffer
        try:
            async for packet in iter_ogg_packets(process.stdout):
                if generation != self._generation:
                    return
                buffer.put(packet)
                if buffer.is_full():
                    await buffer.wait_drained()
        except PipelineError as e:
            logger.error(f"ffmpeg output error: {e}")
            self._kill(process)

    async def _watch_exit(self, process: asyncio.subprocess.Process, generation: int) -> None:
        returncode = await process.wait()
        if generation != self._generation:
            return
        logger.debug(f"ffmpeg exited with code {returncode}")
        if self.process is process:
            self.process = None
        self._stage_ended(generation, f"transcoder exited with code {returncode}")

    def _kill(self, process: asyncio.subprocess.Process) -> None:
        if process.returncode is not None:
            return
        try:
            process.terminate()
        except ProcessLookupError:
            pass
        except OSError as e:
            logger.debug(f"Error terminating ffmpeg: {e}")

    def _teardown_stages(self) -> None:
        process, self.process = self.process, None
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        if process is not None:
            self._kill(process)
            self._exiting.append(process)

    async def _wait_stages_closed(self) -> None:
        exiting, self._exiting = self._exiting, []
        waits = [asyncio.ensure_future(p.wait()) for p in exiting if p.returncode is None]
        if not waits:
            return
        _, pending = await asyncio.wait(waits, timeout=STAGE_CLOSE_TIMEOUT)
        for future in pending:
            future.cancel()
        if pending:
            logger.warning("ffmpeg did not exit after terminate; starting a new one anyway")


def create_pipeline(config: ReceiverConfig) -> AudioPipeline:
    """Build the pipeline variant selected by ``VOICE_PIPELINE``."""
    if config.use_native_pipeline:
        return NativeChain(config)
    return ExternalChain(config)
