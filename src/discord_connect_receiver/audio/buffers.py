# buffers.py
"""
Packet buffering between the audio pipeline and discord.py's player.

The pipeline writes encoded Opus packets from the event loop; discord.py's
player thread reads one packet every 20 ms. The buffer applies backpressure
through its water marks so the FIFO writer is paced by playback.
"""

import asyncio
import logging
import threading
import time
from collections import deque
from typing import Deque, Optional

logger = logging.getLogger(__name__)

# Opus silence frame
SILENCE_FRAME = b"\xf8\xff\xfe"


class PacketBuffer:
    """Thread-safe bounded buffer of Opus packets."""

    def __init__(self, max_size: int = 250, high_water: int = 50, low_water: int = 10):
        """
        Initialize the packet buffer.

        Args:
            max_size: Hard limit; the oldest packet is dropped beyond it
            high_water: Size at which producers should pause
            low_water: Size at which paused producers are woken
        """
        self._packets: Deque[bytes] = deque()
        self._lock = threading.Lock()
        self.max_size = max_size
        self.high_water = high_water
        self.low_water = low_water

        self._drain_event: Optional[asyncio.Event] = None
        self._drain_loop: Optional[asyncio.AbstractEventLoop] = None

        self._total_packets = 0
        self._dropped_packets = 0
        self._last_activity = time.time()

    def put(self, packet: bytes) -> None:
        """Append a packet, dropping the oldest one when full."""
        with self._lock:
            if len(self._packets) >= self.max_size:
                self._packets.popleft()
                self._dropped_packets += 1
            self._packets.append(packet)
            self._total_packets += 1
            self._last_activity = time.time()

    def get_sync(self) -> Optional[bytes]:
        """Pop the oldest packet, or None if empty (player thread)."""
        with self._lock:
            packet = self._packets.popleft() if self._packets else None
            if len(self._packets) <= self.low_water:
                self._wake_drain_waiter()
        return packet

    def _wake_drain_waiter(self) -> None:
        # Caller holds the lock.
        event, loop = self._drain_event, self._drain_loop
        if event is None:
            return
        self._drain_event = None
        self._drain_loop = None
        try:
            loop.call_soon_threadsafe(event.set)
        except RuntimeError:
            # Loop already closed
            pass

    async def wait_drained(self) -> None:
        """Wait until the buffer has drained to the low-water mark."""
        with self._lock:
            if len(self._packets) <= self.low_water:
                return
            if self._drain_event is None:
                self._drain_event = asyncio.Event()
                self._drain_loop = asyncio.get_running_loop()
            event = self._drain_event
        await event.wait()

    def get_silence_frame(self) -> bytes:
        return SILENCE_FRAME

    def clear(self) -> None:
        """Drop all buffered packets and release any waiting producer."""
        with self._lock:
            self._packets.clear()
            self._wake_drain_waiter()

    def size(self) -> int:
        return len(self._packets)

    def is_empty(self) -> bool:
        return len(self._packets) == 0

    def is_full(self) -> bool:
        """True once producers should pause."""
        return len(self._packets) >= self.high_water

    def get_stats(self) -> dict:
        """Get performance statistics."""
        return {
            "total_packets": self._total_packets,
            "dropped_packets": self._dropped_packets,
            "current_size": len(self._packets),
            "max_size": self.max_size,
            "last_activity": self._last_activity,
            "drop_rate": self._dropped_packets / max(self._total_packets, 1) * 100,
        }
