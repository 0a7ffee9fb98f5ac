"""
Supervisor for the librespot source process.

librespot announces a Spotify Connect device over zeroconf and writes the
decoded PCM into the named pipe. The supervisor launches it, relays its
output to the log and restarts it with exponential backoff whenever it exits
while the device is meant to be running.
"""

import asyncio
import logging
import os
import shutil
import time
from enum import Enum
from typing import Any, Dict, List, Optional

from discord_connect_receiver.config.settings import ReceiverConfig
from discord_connect_receiver.infrastructure import (
    ConfigError,
    ProcessExitError,
    ResourceError,
    relay_lines,
    setup_logging,
)

from .named_pipe import NamedPipe
from .respawn import RespawnPolicy

logger = setup_logging("source_supervisor")
librespot_logger = logging.getLogger("librespot")

# librespot PCM sample format written into the pipe.
PCM_FORMAT = "S16"

UNSUPPORTED_TRACK_MARKER = "spotify:local:"


class SourceState(Enum):
    """Lifecycle of the supervised source process."""

    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    BACKOFF = "backoff"
    EXITED = "exited"


class SourceProcessSupervisor:
    """
    Launches, monitors and restarts the librespot process.

    ``keep_alive`` separates an intentional stop from an unplanned exit:
    only the latter schedules a restart.
    """

    def __init__(self, config: ReceiverConfig, named_pipe: Optional[NamedPipe] = None):
        """
        Initialize the supervisor.

        Args:
            config: Receiver configuration
            named_pipe: Pipe librespot writes into (defaults to config.pipe_path)
        """
        self.config = config
        self.named_pipe = named_pipe or NamedPipe(config.pipe_path)
        self.policy = RespawnPolicy(
            base_delay=config.restart_base_delay,
            max_delay=config.restart_max_delay,
            max_attempts=config.max_restart_attempts,
            name="librespot",
        )
        self.process: Optional[asyncio.subprocess.Process] = None
        self.state = SourceState.STOPPED
        self.keep_alive = False
        self.pid: Optional[int] = None
        self.start_time: Optional[float] = None
        self.last_returncode: Optional[int] = None
        self.restart_count = 0
        self._start_lock = asyncio.Lock()
        self._tasks: List[asyncio.Task] = []

    @property
    def pipe_path(self) -> str:
        return self.named_pipe.path

    @property
    def device_name(self) -> str:
        return self.config.device_name

    def resolve_binary(self) -> Optional[str]:
        """Configured librespot path if it exists, else a PATH lookup."""
        if self.config.librespot_path and os.path.exists(self.config.librespot_path):
            return self.config.librespot_path
        return shutil.which("librespot")

    def build_args(self, binary: str) -> List[str]:
        args = [
            binary,
            "--name", self.config.device_name,
            "--backend", "pipe",
            "--device", self.pipe_path,
            "--format", PCM_FORMAT,
            "--bitrate", self.config.librespot_bitrate,
            "--disable-audio-cache",
            "--device-type", self.config.device_type,
        ]
        if self.config.zeroconf_port:
            args += ["--zeroconf-port", str(self.config.zeroconf_port)]
        return args

    def is_running(self) -> bool:
        return self.process is not None and self.process.returncode is None

    async def start(self) -> None:
        """
        Start librespot if it is not already running.

        Concurrent calls are serialized; a call that waited for an in-flight
        spawn returns without spawning again.

        Raises:
            ConfigError: librespot binary not found
            ResourceError: the named pipe could not be created
            ProcessExitError: the process could not be spawned; a restart
                has been scheduled
        """
        async with self._start_lock:
            if self.is_running():
                return
            await self._spawn()

    async def _spawn(self) -> None:
        # A foreground start replaces any pending restart.
        self.policy.cancel()

        binary = self.resolve_binary()
        if not binary:
            raise ConfigError(
                "librespot binary not found. Install librespot and/or set LIBRESPOT_PATH."
            )

        self.named_pipe.ensure()

        self.keep_alive = True
        self.state = SourceState.STARTING
        args = self.build_args(binary)
        logger.debug(f"Spawning librespot: {' '.join(args)}")

        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            self.state = SourceState.EXITED
            logger.error(f"Failed to start librespot: {e}")
            if self.keep_alive:
                self._schedule_restart()
            raise ProcessExitError(f"Failed to start librespot: {e}") from e

        if not self.keep_alive:
            # stop() ran while the spawn was in flight.
            self._terminate(process)
            self.state = SourceState.STOPPED
            return

        self.process = process
        self.pid = process.pid
        self.start_time = time.time()
        self.state = SourceState.RUNNING
        logger.info(
            f'Started librespot as "{self.config.device_name}" (PID: {self.pid}), '
            f"writing to {self.pipe_path}"
        )

        self._tasks = [task for task in self._tasks if not task.done()]
        self._tasks += [
            asyncio.create_task(
                relay_lines(process.stdout, librespot_logger, logging.INFO, self._check_line)
            ),
            asyncio.create_task(
                relay_lines(process.stderr, librespot_logger, logging.WARNING, self._check_line)
            ),
            asyncio.create_task(self._watch_exit(process)),
        ]

    async def stop(self) -> None:
        """Stop librespot and cancel any pending restart. Idempotent."""
        self.keep_alive = False
        self.policy.cancel()
        self.policy.reset()

        process = self.process
        self.process = None
        self.pid = None
        self.start_time = None
        self.state = SourceState.STOPPED

        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()

        if process is not None:
            self._terminate(process)
            logger.info("Stopped librespot")

    def _terminate(self, process: asyncio.subprocess.Process) -> None:
        if process.returncode is not None:
            return
        try:
            process.terminate()
        except ProcessLookupError:
            pass
        except OSError as e:
            logger.debug(f"Error terminating librespot: {e}")

    @staticmethod
    def _check_line(text: str) -> None:
        if UNSUPPORTED_TRACK_MARKER in text:
            librespot_logger.warning(
                "Detected unsupported spotify:local track in context; "
                "it will be skipped by the player."
            )

    async def _watch_exit(self, process: asyncio.subprocess.Process) -> None:
        returncode = await process.wait()

        if process is not self.process:
            # Exit of a process we already stopped or replaced.
            return

        self.process = None
        self.pid = None
        self.last_returncode = returncode
        self.state = SourceState.EXITED
        logger.info(f"librespot exited with code {returncode}")

        if self.keep_alive:
            self._schedule_restart()

    def _schedule_restart(self) -> None:
        delay = self.policy.current_delay
        if self.policy.schedule(self._restart):
            self.state = SourceState.BACKOFF
            logger.info(f"Attempting to restart librespot in {delay:.2f}s...")

    async def _restart(self) -> None:
        if not self.keep_alive or self.is_running() or self._start_lock.locked():
            # A foreground start is already spawning.
            return

        self.restart_count += 1
        try:
            await self.start()
        except ProcessExitError as e:
            if not self.keep_alive:
                return
            self.policy.backoff()
            if self.policy.exhausted:
                logger.error(
                    f"Giving up on librespot after {self.policy.attempts} failed restarts: {e}"
                )
                self.policy.cancel()
                self.keep_alive = False
                self.state = SourceState.STOPPED
                return
            logger.error(f"Error restarting librespot: {e}")
            # start() scheduled with the old delay; replace it with the new one.
            self.policy.cancel()
            self._schedule_restart()
        except (ConfigError, ResourceError) as e:
            logger.error(f"Not restarting librespot: {e}")
            self.keep_alive = False
            self.state = SourceState.STOPPED
        else:
            self.policy.reset()

    def get_status(self) -> Dict[str, Any]:
        """Get the status of the source process."""
        return {
            "state": self.state.value,
            "is_running": self.is_running(),
            "pid": self.pid,
            "pipe_path": self.pipe_path,
            "device_name": self.config.device_name,
            "restart_count": self.restart_count,
            "restart_delay": self.policy.current_delay,
            "last_returncode": self.last_returncode,
            "uptime": time.time() - self.start_time if self.start_time else 0,
        }
