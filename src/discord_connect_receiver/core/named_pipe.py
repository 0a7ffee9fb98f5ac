"""
Named pipe (FIFO) shared between librespot and the audio pipeline.

librespot's ``pipe`` backend writes raw PCM into the FIFO and the active
pipeline reads it. The node must exist, and be a FIFO, before either end
opens it, so :meth:`NamedPipe.ensure` creates it synchronously.
"""

import os
import stat

from discord_connect_receiver.infrastructure import ResourceError, setup_logging

logger = setup_logging("named_pipe")

FIFO_MODE = 0o666


class NamedPipe:
    """A filesystem FIFO at a fixed path."""

    def __init__(self, path: str):
        self.path = path

    def __repr__(self) -> str:
        return f"NamedPipe({self.path!r})"

    def _stat(self):
        try:
            return os.lstat(self.path)
        except FileNotFoundError:
            return None

    @property
    def exists(self) -> bool:
        return self._stat() is not None

    @property
    def is_fifo(self) -> bool:
        st = self._stat()
        return st is not None and stat.S_ISFIFO(st.st_mode)

    def ensure(self) -> None:
        """
        Make sure a world read/write FIFO exists at ``path``.

        A node of any other type is removed and replaced. Idempotent; an
        existing FIFO is left untouched.

        Raises:
            ResourceError: If the FIFO cannot be created on this platform or
                the filesystem refuses the operation.
        """
        if not hasattr(os, "mkfifo"):
            raise ResourceError(
                f"Named pipes are not supported on this platform; cannot create {self.path}"
            )

        st = self._stat()
        if st is not None and stat.S_ISFIFO(st.st_mode):
            return

        try:
            if st is not None:
                logger.warning(
                    f"{self.path} exists but is not a FIFO, replacing it"
                )
                if stat.S_ISDIR(st.st_mode):
                    os.rmdir(self.path)
                else:
                    os.unlink(self.path)

            parent = os.path.dirname(self.path)
            if parent:
                os.makedirs(parent, exist_ok=True)

            os.mkfifo(self.path, FIFO_MODE)
            # mkfifo applies the umask
            os.chmod(self.path, FIFO_MODE)
        except FileExistsError:
            # Another process created it between the stat and mkfifo.
            if not self.is_fifo:
                raise ResourceError(
                    f"{self.path} was created concurrently and is not a FIFO"
                ) from None
        except OSError as e:
            raise ResourceError(f"Failed to create FIFO at {self.path}: {e}") from e

        if not self.is_fifo:
            raise ResourceError(f"FIFO at {self.path} is missing after creation")

        logger.info(f"Created FIFO {self.path}")
