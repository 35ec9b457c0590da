"""
Generated configuration for an isolated containerd instance.

The configuration is a typed structure serialized to TOML, so every path
slot is derived from the same work directory.
"""

import logging
import os
import sys
from dataclasses import asdict, dataclass, field

import tomli_w

from .errors import ConfigWriteError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.toml"


@dataclass
class GrpcSection:
    address: str
    uid: int = -1
    gid: int = -1


@dataclass
class DebugSection:
    address: str
    level: str = "info"


@dataclass
class MetricsSection:
    address: str = ""


@dataclass
class DaemonConfig:
    """Top-level containerd configuration document."""

    state: str
    root: str
    snapshotter: str
    grpc: GrpcSection
    debug: DebugSection
    subreaper: bool = False
    oom_score: int = 0
    metrics: MetricsSection = field(default_factory=MetricsSection)

    @classmethod
    def for_work_dir(cls, work_dir: str, snapshotter: str) -> "DaemonConfig":
        """Build a configuration rooted entirely at ``work_dir``."""
        return cls(
            state=os.path.join(work_dir, "state"),
            root=os.path.join(work_dir, "root"),
            snapshotter=snapshotter,
            grpc=GrpcSection(address=os.path.join(work_dir, "containerd.sock")),
            debug=DebugSection(address=os.path.join(work_dir, "debug.sock")),
        )

    def to_toml(self) -> str:
        return tomli_w.dumps(asdict(self))


def select_snapshotter(platform: str | None = None) -> str:
    """
    Pick the snapshotter supported by the host.

    Args:
        platform: Platform string as in ``sys.platform`` (defaults to the host)

    Returns:
        "naive" on macOS, which has no overlay filesystem; "overlay" elsewhere
    """
    platform = sys.platform if platform is None else platform
    return "naive" if platform == "darwin" else "overlay"


def write_config(work_dir: str, snapshotter: str) -> str:
    """
    Render the daemon configuration and write it into ``work_dir``.

    Args:
        work_dir: Private directory of the daemon instance
        snapshotter: Snapshotter name, see select_snapshotter()

    Returns:
        Absolute path of the written config.toml

    Raises:
        ConfigWriteError: if the file cannot be written

    The file is created with owner-only permissions (0600).
    """
    config_path = os.path.join(work_dir, CONFIG_FILENAME)
    document = DaemonConfig.for_work_dir(work_dir, snapshotter).to_toml()
    logger.debug(f"Writing containerd config to {config_path}")

    try:
        fd = os.open(config_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(document)
    except OSError as e:
        logger.error(f"Failed to write containerd config {config_path}: {e}")
        raise ConfigWriteError(f"Cannot write {config_path}: {e}") from e

    return config_path
