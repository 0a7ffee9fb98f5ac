"""
Voice transport session.

Wraps the guild's discord.py :class:`discord.VoiceClient`: joining and
leaving the channel, and attaching the active pipeline's audio source to the
player. Only one pipeline is attached at a time; attaching a new one closes
the previous one first.
"""

import asyncio
from enum import Enum
from typing import Optional

import discord

from discord_connect_receiver.audio import PipelineAudioSource, PlayerState
from discord_connect_receiver.config.settings import ReceiverConfig
from discord_connect_receiver.infrastructure import (
    JoinError,
    JoinTimeoutError,
    NotConnectedError,
    setup_logging,
)

from .pipeline import AudioPipeline

logger = setup_logging("voice_transport")


class ConnectionState(Enum):
    """Voice connection lifecycle."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    READY = "ready"
    DESTROYED = "destroyed"


class TransportSession:
    """Voice connection plus the player playing the active pipeline."""

    def __init__(self, config: ReceiverConfig):
        self.config = config
        self.voice_client: Optional[discord.VoiceClient] = None
        self.state = ConnectionState.DISCONNECTED
        self.active_pipeline: Optional[AudioPipeline] = None
        self._player_state = PlayerState.IDLE
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    @property
    def is_connected(self) -> bool:
        return (
            self.state is ConnectionState.READY
            and self.voice_client is not None
            and self.voice_client.is_connected()
        )

    @property
    def channel(self) -> Optional[discord.abc.Connectable]:
        return self.voice_client.channel if self.voice_client is not None else None

    async def join(self, channel: discord.VoiceChannel) -> discord.VoiceClient:
        """
        Connect to ``channel`` and wait until the connection is ready.

        Raises:
            JoinTimeoutError: not ready within ``join_timeout`` seconds
            JoinError: the connection failed
        """
        existing = channel.guild.voice_client
        if existing is not None and existing.is_connected():
            self.voice_client = existing
            self.state = ConnectionState.READY
            if existing.channel is not None and existing.channel.id == channel.id:
                return existing
            logger.info(f"Moving to voice channel {channel.name}")
            try:
                await existing.move_to(channel)
            except Exception as e:
                raise JoinError(f"Failed to move to {channel.name}: {e}") from e
            return existing

        self._loop = asyncio.get_running_loop()
        self.state = ConnectionState.CONNECTING
        logger.info(f"Joining voice channel {channel.name} ({channel.id})")

        try:
            voice_client = await asyncio.wait_for(
                channel.connect(
                    timeout=self.config.join_timeout,
                    reconnect=True,
                    self_deaf=False,
                    self_mute=False,
                ),
                timeout=self.config.join_timeout,
            )
        except asyncio.TimeoutError:
            await self._discard_connection(channel.guild)
            raise JoinTimeoutError(
                f"Voice connection to {channel.name} was not ready within "
                f"{self.config.join_timeout:g}s"
            ) from None
        except discord.ClientException:
            # Already connected in this guild; adopt that connection.
            voice_client = channel.guild.voice_client
            if voice_client is None:
                self.state = ConnectionState.DISCONNECTED
                raise JoinError(f"Failed to join {channel.name}") from None
        except Exception as e:
            await self._discard_connection(channel.guild)
            raise JoinError(f"Failed to join {channel.name}: {e}") from e

        self.voice_client = voice_client
        self.state = ConnectionState.READY
        logger.info(f"Voice connection ready in {channel.name}")
        return voice_client

    async def _discard_connection(self, guild: discord.Guild) -> None:
        self.state = ConnectionState.DISCONNECTED
        voice_client = guild.voice_client
        self.voice_client = None
        if voice_client is None:
            return
        try:
            await voice_client.disconnect(force=True)
        except Exception as e:
            logger.debug(f"Error discarding voice connection: {e}")

    async def leave(self) -> None:
        """Disconnect and stop playback. Safe when not connected."""
        voice_client, self.voice_client = self.voice_client, None
        if voice_client is not None:
            try:
                await voice_client.disconnect(force=True)
            except Exception as e:
                logger.debug(f"Error disconnecting voice client: {e}")
            else:
                logger.info("Left voice channel")
        self.stop_playback()
        if self.state is not ConnectionState.DESTROYED:
            self.state = ConnectionState.DISCONNECTED

    def handle_voice_state_update(
        self, before: discord.VoiceState, after: discord.VoiceState
    ) -> None:
        """Track the bot's own voice state changes."""
        if after.channel is None and before.channel is not None:
            if self.state is ConnectionState.DISCONNECTED:
                return
            logger.warning(f"Disconnected from voice channel {before.channel.name}")
            self.voice_client = None
            self.stop_playback()
            self.state = ConnectionState.DISCONNECTED
        elif after.channel is not None and before.channel != after.channel:
            logger.info(f"Voice channel is now {after.channel.name}")

    # ------------------------------------------------------------------
    # Playback
    # ------------------------------------------------------------------

    @property
    def player_state(self) -> PlayerState:
        if (
            self._player_state in (PlayerState.PLAYING, PlayerState.BUFFERING)
            and self.voice_client is not None
            and not self.voice_client.is_connected()
        ):
            return PlayerState.AUTO_PAUSED
        return self._player_state

    def _set_player_state(self, state: PlayerState) -> None:
        if state is self._player_state:
            return
        logger.debug(f"Player state {self._player_state.value} -> {state.value}")
        self._player_state = state

    def _on_source_state(self, state: PlayerState) -> None:
        # Runs on the player thread.
        if self._loop is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._set_player_state, state)

    def play_from_pipeline(self, pipeline: AudioPipeline, source: PipelineAudioSource) -> None:
        """
        Play ``source`` and make ``pipeline`` the active one.

        Raises:
            NotConnectedError: no ready voice connection
        """
        if not self.is_connected:
            raise NotConnectedError("Not connected to a voice channel.")

        voice_client = self.voice_client
        if voice_client.is_playing() or voice_client.is_paused():
            voice_client.stop()
        if self.active_pipeline is not None and self.active_pipeline is not pipeline:
            self.active_pipeline.close()

        self._loop = asyncio.get_running_loop()
        self.active_pipeline = pipeline
        source.on_state = self._on_source_state

        def after(error: Optional[Exception]) -> None:
            if self._loop is not None and not self._loop.is_closed():
                self._loop.call_soon_threadsafe(self._on_player_finished, source, error)

        voice_client.play(source, after=after)
        self._set_player_state(PlayerState.BUFFERING)
        logger.info(f"Playing from {pipeline.mode} pipeline")

    def _on_player_finished(self, source: PipelineAudioSource, error: Optional[Exception]) -> None:
        if error is not None:
            logger.error(f"Audio player error: {error}")
        if self.active_pipeline is not None and self.active_pipeline.source is source:
            self._set_player_state(PlayerState.IDLE)

    def stop_playback(self) -> None:
        """Stop the player and close the active pipeline. Safe when idle."""
        pipeline, self.active_pipeline = self.active_pipeline, None
        voice_client = self.voice_client
        if voice_client is not None:
            try:
                voice_client.stop()
            except Exception as e:
                logger.debug(f"Error stopping player: {e}")
        if pipeline is not None:
            pipeline.close()
            logger.info("Playback stopped")
        self._set_player_state(PlayerState.IDLE)

    async def close(self) -> None:
        await self.leave()
        self.state = ConnectionState.DESTROYED

    def get_status(self) -> dict:
        return {
            "connection_state": self.state.value,
            "player_state": self.player_state.value,
            "channel": getattr(self.channel, "name", None),
            "pipeline": self.active_pipeline.get_status() if self.active_pipeline else None,
        }
