"""
Unit tests for the PacketBuffer and PipelineAudioSource components.
"""

import asyncio

import pytest

from discord_connect_receiver.audio.buffers import SILENCE_FRAME, PacketBuffer
from discord_connect_receiver.audio.sources import PipelineAudioSource, PlayerState


class TestPacketBuffer:
    """Test cases for PacketBuffer class."""

    @pytest.mark.unit
    def test_fifo_order(self):
        """Test that packets come out in the order they went in."""
        buffer = PacketBuffer()
        buffer.put(b"one")
        buffer.put(b"two")

        assert buffer.get_sync() == b"one"
        assert buffer.get_sync() == b"two"
        assert buffer.get_sync() is None
        assert buffer.is_empty()

    @pytest.mark.unit
    def test_overflow_drops_oldest(self):
        """Test that a full buffer discards the oldest packet."""
        buffer = PacketBuffer(max_size=3, high_water=2, low_water=1)
        for packet in (b"1", b"2", b"3", b"4"):
            buffer.put(packet)

        assert buffer.size() == 3
        assert buffer.get_sync() == b"2"
        stats = buffer.get_stats()
        assert stats["dropped_packets"] == 1
        assert stats["total_packets"] == 4

    @pytest.mark.unit
    def test_high_water_mark(self):
        """Test that producers are told to pause at the high-water mark."""
        buffer = PacketBuffer(max_size=10, high_water=3, low_water=1)
        buffer.put(b"1")
        buffer.put(b"2")
        assert not buffer.is_full()
        buffer.put(b"3")
        assert buffer.is_full()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_wait_drained_returns_when_low(self):
        """Test that a nearly empty buffer does not block producers."""
        buffer = PacketBuffer(max_size=10, high_water=5, low_water=2)
        buffer.put(b"1")

        await asyncio.wait_for(buffer.wait_drained(), timeout=0.1)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_wait_drained_woken_by_player_thread(self):
        """Test that reads on another thread wake the waiting producer."""
        buffer = PacketBuffer(max_size=100, high_water=20, low_water=5)
        for i in range(20):
            buffer.put(bytes([i]))

        waiter = asyncio.create_task(buffer.wait_drained())
        await asyncio.sleep(0)
        assert not waiter.done()

        def drain():
            while buffer.size() > 5:
                buffer.get_sync()

        await asyncio.get_running_loop().run_in_executor(None, drain)
        await asyncio.wait_for(waiter, timeout=1)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_clear_releases_waiter(self):
        """Test that clearing the buffer releases a waiting producer."""
        buffer = PacketBuffer(max_size=100, high_water=20, low_water=5)
        for i in range(20):
            buffer.put(bytes([i]))

        waiter = asyncio.create_task(buffer.wait_drained())
        await asyncio.sleep(0)
        buffer.clear()

        await asyncio.wait_for(waiter, timeout=1)
        assert buffer.is_empty()


class TestPipelineAudioSource:
    """Test cases for PipelineAudioSource class."""

    @pytest.mark.unit
    def test_is_opus(self):
        assert PipelineAudioSource(PacketBuffer()).is_opus()

    @pytest.mark.unit
    def test_silence_while_empty(self):
        """Test that an empty buffer yields silence, not end of stream."""
        source = PipelineAudioSource(PacketBuffer())

        assert source.read() == SILENCE_FRAME
        assert source.read() == SILENCE_FRAME
        assert not source.finished

    @pytest.mark.unit
    def test_reports_state_transitions(self):
        """Test that only state changes reach the observer."""
        states = []
        buffer = PacketBuffer()
        source = PipelineAudioSource(buffer, on_state=states.append)

        source.read()
        source.read()
        buffer.put(b"a")
        buffer.put(b"b")
        assert source.read() == b"a"
        assert source.read() == b"b"
        source.read()

        assert states == [PlayerState.BUFFERING, PlayerState.PLAYING, PlayerState.BUFFERING]

    @pytest.mark.unit
    def test_finish_ends_stream(self):
        """Test that a finished source ends playback."""
        buffer = PacketBuffer()
        buffer.put(b"a")
        source = PipelineAudioSource(buffer)

        source.cleanup()

        assert source.read() == b""
        assert source.get_stats()["finished"] is True
