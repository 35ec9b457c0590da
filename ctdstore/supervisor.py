"""
Supervisor for a private containerd instance.

Each Containerd owns one daemon process and one temporary directory holding
its configuration, state, content store and sockets. The two are reclaimed
together by close().
"""

import logging
import os
import shutil
import subprocess
import tempfile
import threading

from .archive import bundle, store_snapshot
from .config import config
from .daemon_config import CONFIG_FILENAME, select_snapshotter, write_config
from .errors import (
    BinaryNotFoundError,
    DirectoryError,
    ProcessError,
    ProcessStartError,
)
from .fetcher import fetch

logger = logging.getLogger(__name__)


def _check_output(output) -> None:
    if output is None or isinstance(output, int):
        return
    try:
        output.fileno()
    except (AttributeError, OSError, ValueError) as e:
        raise ValueError(f"Output sink needs a file descriptor, got {output!r}") from e


class Containerd:
    """
    A running containerd isolated in its own directory.

    Use Containerd.start() to create one. The instance is not meant to be
    used from several threads at once, apart from kill()/close() which are
    safe against each other.

    Example:
        >>> with Containerd.start(sys.stderr) as ctd:
        ...     ctd.fetch("alpine")
    """

    def __init__(self, process: subprocess.Popen, work_dir: str, output=None):
        self.process = process
        self.work_dir = work_dir
        self.output = output
        self.shutdown = False
        self._lock = threading.Lock()

    @classmethod
    def start(cls, output=None) -> "Containerd":
        """
        Start a new containerd instance in a fresh temporary directory.

        Args:
            output: Sink for the daemon's stderr. Anything subprocess accepts
                (a file object with a file descriptor, a descriptor number,
                subprocess.DEVNULL) or None to inherit the caller's stderr.

        Returns:
            The started instance. There is no readiness probe, the daemon
            may take a moment before its socket accepts connections.

        Raises:
            DirectoryError: if the temporary directory cannot be created
            ConfigWriteError: if config.toml cannot be written
            BinaryNotFoundError: if containerd is not on PATH
            ProcessStartError: if the OS refuses to start the daemon
            ValueError: if output has no file descriptor, e.g. io.BytesIO

        The directory is removed again if any step after its creation fails.
        """
        _check_output(output)

        try:
            work_dir = tempfile.mkdtemp(prefix=config.WORK_DIR_PREFIX)
        except OSError as e:
            raise DirectoryError(f"Cannot create temporary directory: {e}") from e

        try:
            snapshotter = select_snapshotter()
            config_path = write_config(work_dir, snapshotter)

            containerd = shutil.which(config.CONTAINERD_BIN)
            if containerd is None:
                raise BinaryNotFoundError(f"Cannot find {config.CONTAINERD_BIN} in path")

            cmd = [containerd, "--config", config_path]
            logger.debug(f"Running command: {' '.join(cmd)}")
            try:
                process = subprocess.Popen(cmd, stderr=output)
            except OSError as e:
                raise ProcessStartError(f"Cannot start {containerd}: {e}") from e
        except Exception:
            shutil.rmtree(work_dir, ignore_errors=True)
            raise

        logger.info(
            f"Started containerd pid={process.pid} in {work_dir} (snapshotter={snapshotter})"
        )
        return cls(process, work_dir, output)

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def config_path(self) -> str:
        return os.path.join(self.work_dir, CONFIG_FILENAME)

    @property
    def root_path(self) -> str:
        return os.path.join(self.work_dir, "root")

    @property
    def socket_path(self) -> str:
        return os.path.join(self.work_dir, "containerd.sock")

    def kill(self) -> None:
        """
        Kill containerd but leave the directory in place.

        Call close() afterwards to clean up. Killing an already exited
        daemon is harmless.

        Raises:
            ProcessError: if the process cannot be signalled
        """
        with self._lock:
            self._kill()

    def _kill(self) -> None:
        try:
            self.process.kill()
        except OSError as e:
            raise ProcessError(f"Cannot kill containerd pid={self.process.pid}: {e}") from e

        # exit status of a killed process carries no information
        self.process.wait()
        self.shutdown = True
        logger.info(f"Killed containerd pid={self.process.pid}")

    def close(self) -> None:
        """
        Kill containerd if still running, then remove its directory.

        Raises:
            ProcessError: if the kill fails; the directory is left untouched
            DirectoryError: if the directory cannot be removed

        A directory that is already gone counts as removed.
        """
        with self._lock:
            if not self.shutdown:
                self._kill()

            try:
                shutil.rmtree(self.work_dir)
            except FileNotFoundError:
                logger.debug(f"Work directory already removed: {self.work_dir}")
            except OSError as e:
                raise DirectoryError(f"Cannot remove {self.work_dir}: {e}") from e

        logger.info(f"Closed containerd, removed {self.work_dir}")

    def fetch(self, image: str, trust: bool = False) -> None:
        """Fetch an image into the content store, see fetcher.fetch()."""
        fetch(self, image, trust)

    def store(self, out) -> None:
        """Write a tarball of the content store to ``out``, see archive.store_snapshot()."""
        store_snapshot(self, out)

    def bundle(self, path: str, image: str, config_bytes: bytes, trust: bool = False) -> bytes:
        """Build a bundle tarball and fetch its image, see archive.bundle()."""
        return bundle(self, path, image, config_bytes, trust)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __repr__(self):
        return f"Containerd(pid={self.process.pid}, work_dir={self.work_dir}, shutdown={self.shutdown})"
