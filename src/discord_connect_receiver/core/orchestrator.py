"""
Playback orchestrator.

Ties the source supervisor, the voice transport and the pipeline factory
together behind the device commands. Start and stop are serialized so a
device start never interleaves with a stop.
"""

import asyncio
from dataclasses import asdict, dataclass
from typing import Callable, Optional

import discord

from discord_connect_receiver.config.settings import ReceiverConfig
from discord_connect_receiver.infrastructure import (
    NotConnectedError,
    ProcessExitError,
    setup_logging,
)

from .pipeline import AudioPipeline, create_pipeline
from .source_supervisor import SourceProcessSupervisor
from .transport import TransportSession

logger = setup_logging("orchestrator")


@dataclass
class DeviceStatus:
    """Snapshot reported by the ``device status`` command."""

    running: bool
    connected: bool
    pipe_path: str
    device_name: str
    connection_state: str
    player_state: str
    pipeline_mode: str

    def as_dict(self) -> dict:
        return asdict(self)


class PlaybackOrchestrator:
    """Owns the supervisor, transport and pipeline factory for the bot's lifetime."""

    def __init__(
        self,
        config: ReceiverConfig,
        supervisor: Optional[SourceProcessSupervisor] = None,
        session: Optional[TransportSession] = None,
        pipeline_factory: Callable[[ReceiverConfig], AudioPipeline] = create_pipeline,
    ):
        self.config = config
        self.supervisor = supervisor or SourceProcessSupervisor(config)
        self.session = session or TransportSession(config)
        self.pipeline_factory = pipeline_factory
        self._lock = asyncio.Lock()

    async def join(self, channel: discord.VoiceChannel) -> None:
        async with self._lock:
            await self.session.join(channel)

    async def leave(self) -> None:
        """Leave the voice channel; the device is stopped too."""
        async with self._lock:
            await self.session.leave()
            await self.supervisor.stop()

    async def start_device(self, channel: Optional[discord.VoiceChannel] = None) -> None:
        """
        Start librespot and stream the pipe into the voice channel.

        Joins ``channel`` first when not connected.

        Raises:
            NotConnectedError: not connected and no channel to join
            ReceiverError: any other startup failure, with a readable message
        """
        async with self._lock:
            if not self.session.is_connected:
                if channel is None:
                    raise NotConnectedError(
                        "Not connected to a voice channel. Join one first."
                    )
                await self.session.join(channel)

            try:
                await self.supervisor.start()
            except ProcessExitError as e:
                # A restart is already scheduled; the pipeline waits for a writer.
                logger.warning(f"librespot did not start, retrying in background: {e}")

            self.session.stop_playback()
            pipeline = self.pipeline_factory(self.config)
            try:
                source = await pipeline.spawn(self.supervisor.pipe_path)
                self.session.play_from_pipeline(pipeline, source)
            except BaseException:
                pipeline.close()
                raise

            logger.info(f'Device "{self.supervisor.device_name}" started')

    async def stop_device(self) -> None:
        """Stop playback, then librespot. Safe when already stopped."""
        async with self._lock:
            self.session.stop_playback()
            await self.supervisor.stop()
            logger.info("Device stopped")

    def status(self) -> DeviceStatus:
        return DeviceStatus(
            running=self.supervisor.is_running(),
            connected=self.session.is_connected,
            pipe_path=self.supervisor.pipe_path,
            device_name=self.supervisor.device_name,
            connection_state=self.session.state.value,
            player_state=self.session.player_state.value,
            pipeline_mode=self.config.pipeline_mode,
        )

    async def shutdown(self) -> None:
        """Stop everything; used when the bot closes."""
        async with self._lock:
            self.session.stop_playback()
            await self.supervisor.stop()
            await self.session.close()
        logger.info("Orchestrator shut down")
