"""
Pytest configuration and shared fixtures for the Connect Receiver test suite.

This module provides common fixtures and configuration for all tests,
including a fake subprocess factory standing in for librespot and ffmpeg.
"""

import asyncio
import itertools
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest
from discord.ext import commands

from discord_connect_receiver.config.settings import ReceiverConfig


class FakeProcess:
    """Stands in for ``asyncio.subprocess.Process``."""

    _pids = itertools.count(4000)

    def __init__(self, args):
        self.args = list(args)
        self.pid = next(self._pids)
        self.returncode = None
        self.stdout = asyncio.StreamReader()
        self.stderr = asyncio.StreamReader()
        self.terminated = False
        self._exited = asyncio.Event()

    async def wait(self):
        await self._exited.wait()
        return self.returncode

    def exit(self, code=0):
        """Simulate the process exiting on its own."""
        if self.returncode is not None:
            return
        self.returncode = code
        self.stdout.feed_eof()
        self.stderr.feed_eof()
        self._exited.set()

    def terminate(self):
        self.terminated = True
        self.exit(-15)

    def kill(self):
        self.exit(-9)


class FakeSpawner:
    """Replacement for ``asyncio.create_subprocess_exec``."""

    def __init__(self):
        self.processes = []
        self.failures = 0
        self.delay = 0

    async def __call__(self, *args, **kwargs):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.failures:
            self.failures -= 1
            raise FileNotFoundError(2, "No such file or directory", args[0])
        process = FakeProcess(args)
        self.processes.append(process)
        return process

    @property
    def last(self):
        return self.processes[-1]


@pytest.fixture
def fake_spawner(monkeypatch):
    """Patch subprocess creation with a recording fake."""
    spawner = FakeSpawner()
    monkeypatch.setattr(asyncio, "create_subprocess_exec", spawner)
    return spawner


@pytest.fixture
def receiver_config(tmp_path):
    """Create a configuration with short delays and fake binaries."""
    librespot = tmp_path / "bin" / "librespot"
    ffmpeg = tmp_path / "bin" / "ffmpeg"
    librespot.parent.mkdir()
    librespot.write_text("")
    ffmpeg.write_text("")
    return ReceiverConfig(
        discord_token="mock_token",
        command_prefix="!",
        log_level="DEBUG",
        join_timeout=0.1,
        pipe_path=str(tmp_path / "run" / "librespot-discord.fifo"),
        librespot_path=str(librespot),
        device_name="Test Device",
        restart_base_delay=0.01,
        restart_max_delay=0.08,
        native_respawn_delay=0.01,
        ffmpeg_respawn_delay=0.01,
        ffmpeg_path=str(ffmpeg),
    )


@pytest.fixture
def mock_guild():
    """Create a mock Discord guild for testing."""
    guild = MagicMock(spec=discord.Guild)
    guild.id = 123456789
    guild.name = "Test Guild"
    guild.voice_client = None
    return guild


@pytest.fixture
def mock_channel(mock_guild):
    """Create a mock Discord voice channel for testing."""
    channel = MagicMock(spec=discord.VoiceChannel)
    channel.id = 987654321
    channel.name = "Test Channel"
    channel.guild = mock_guild
    return channel


@pytest.fixture
def mock_voice_client(mock_channel):
    """Create a mock Discord voice client for testing."""
    voice_client = MagicMock()
    voice_client.is_connected.return_value = True
    voice_client.is_playing.return_value = False
    voice_client.is_paused.return_value = False
    voice_client.channel = mock_channel
    voice_client.disconnect = AsyncMock()
    voice_client.move_to = AsyncMock()
    return voice_client


@pytest.fixture
def mock_member(mock_channel):
    """Create a mock Discord member sitting in the test voice channel."""
    member = MagicMock(spec=discord.Member)
    member.id = 111222333
    member.display_name = "Test User"
    member.voice = MagicMock()
    member.voice.channel = mock_channel
    return member


@pytest.fixture
def mock_context(mock_guild, mock_member):
    """Create a mock Discord command context for testing."""
    context = MagicMock(spec=commands.Context)
    context.guild = mock_guild
    context.author = mock_member
    context.send = AsyncMock()
    context.typing = MagicMock()
    return context


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")
