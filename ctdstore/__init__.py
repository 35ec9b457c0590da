"""
Containerd content store packaging.

Runs a private, short-lived containerd instance, fetches images into it with
the dist tool and packages its content store as tarballs.

Features:
    - Isolated daemon per instance (own directory, config, sockets)
    - Generated TOML configuration, snapshotter picked per host OS
    - Image fetch via dist with Docker-style name normalization
    - Content store snapshot as a tarball rooted at var/lib/containerd/
    - Bundle tarballs holding an image name and a config.json
    - Optional HTTP surface (Flask)
    - Configurable via environment variables

Usage:
    >>> from ctdstore import Containerd
    >>> with Containerd.start(sys.stderr) as ctd:
    ...     ctd.fetch("alpine:3.5")
    ...     with open("store.tar", "wb") as f:
    ...         ctd.store(f)

External tools:
    containerd and dist must be on PATH.
"""

__version__ = "0.1.0"

# Import key components for convenience
from .config import Config
from .errors import (
    CtdError,
    BinaryNotFoundError,
    DirectoryError,
    ConfigWriteError,
    ProcessStartError,
    ProcessError,
    FetchError,
    ArchiveError,
    InvalidReferenceError,
)
from .naming import normalize_image_name, validate_image_ref
from .daemon_config import DaemonConfig, select_snapshotter, write_config
from .fetcher import fetch
from .archive import STORE_PREFIX, tar_prefix, store_snapshot, bundle
from .supervisor import Containerd

__all__ = [
    "Config",
    "CtdError",
    "BinaryNotFoundError",
    "DirectoryError",
    "ConfigWriteError",
    "ProcessStartError",
    "ProcessError",
    "FetchError",
    "ArchiveError",
    "InvalidReferenceError",
    "normalize_image_name",
    "validate_image_ref",
    "DaemonConfig",
    "select_snapshotter",
    "write_config",
    "fetch",
    "STORE_PREFIX",
    "tar_prefix",
    "store_snapshot",
    "bundle",
    "Containerd",
]
