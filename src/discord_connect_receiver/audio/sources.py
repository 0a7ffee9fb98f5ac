"""
discord.py audio source fed by the pipeline's packet buffer.
"""

import logging
from enum import Enum
from typing import Callable, Optional

import discord

from .buffers import PacketBuffer

logger = logging.getLogger(__name__)


class PlayerState(Enum):
    """Player states as observed from the audio source."""

    IDLE = "idle"
    BUFFERING = "buffering"
    PLAYING = "playing"
    PAUSED = "paused"
    AUTO_PAUSED = "autopaused"


class PipelineAudioSource(discord.AudioSource):
    """
    Opus source that plays packets from a :class:`PacketBuffer`.

    While the buffer is empty (source paused, reconnecting or the pipeline
    respawning) it returns a silence frame instead of ending the stream, so
    the player keeps running until :meth:`finish` is called.
    """

    def __init__(
        self,
        packet_buffer: PacketBuffer,
        on_state: Optional[Callable[[PlayerState], None]] = None,
    ):
        self.packet_buffer = packet_buffer
        self.on_state = on_state
        self._finished = False
        self._state: Optional[PlayerState] = None
        self._read_count = 0

    def is_opus(self) -> bool:
        return True

    @property
    def finished(self) -> bool:
        return self._finished

    def finish(self) -> None:
        """End the stream; the next read returns ``b""``."""
        self._finished = True

    def _report(self, state: PlayerState) -> None:
        if state is self._state:
            return
        self._state = state
        if self.on_state is not None:
            try:
                self.on_state(state)
            except Exception as e:
                logger.debug(f"Player state observer failed: {e}")

    def read(self) -> bytes:
        """Called by discord.py's player thread for the next Opus packet."""
        if self._finished:
            return b""

        self._read_count += 1
        packet = self.packet_buffer.get_sync()
        if packet is None:
            self._report(PlayerState.BUFFERING)
            return self.packet_buffer.get_silence_frame()

        self._report(PlayerState.PLAYING)
        return packet

    def cleanup(self) -> None:
        self.finish()

    def get_stats(self) -> dict:
        return {
            "read_count": self._read_count,
            "finished": self._finished,
            "buffer_stats": self.packet_buffer.get_stats(),
        }
