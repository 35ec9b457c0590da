"""
Tarball construction for the containerd store.

Provides two archive builders:
    - store_snapshot(): streams the content store of a daemon instance as a
      tarball rooted at var/lib/containerd/
    - bundle(): builds an in-memory tarball holding an image name and a
      config.json under a caller supplied path, then fetches the image
"""

import io
import logging
import os
import tarfile

from .errors import ArchiveError
from .fetcher import fetch

logger = logging.getLogger(__name__)

STORE_PREFIX = "var/lib/containerd/"


def tar_prefix(tw: tarfile.TarFile, path: str) -> None:
    """
    Write a directory header for every leading segment of ``path``.

    Args:
        tw: Open tar writer
        path: Relative directory path ending in "/", e.g. "var/lib/containerd/"

    Raises:
        ArchiveError: if path is absolute, does not end in "/" or a header
            cannot be written

    Example:
        "var/lib/containerd/" writes directories "var", "var/lib" and
        "var/lib/containerd", in that order.
    """
    if not path:
        return
    if not path.endswith("/"):
        raise ArchiveError(f"Path does not end with /: {path}")
    path = path[:-1]
    if not path or path.startswith("/"):
        raise ArchiveError(f"Path should be relative: {path}/")

    mkdir = ""
    for segment in path.split("/"):
        if not segment:
            continue
        mkdir = mkdir + segment
        info = tarfile.TarInfo(mkdir)
        info.type = tarfile.DIRTYPE
        info.mode = 0o755
        try:
            tw.addfile(info)
        except (OSError, tarfile.TarError) as e:
            raise ArchiveError(f"Cannot write directory header {mkdir}: {e}") from e
        mkdir = mkdir + "/"


def _raise_walk_error(err: OSError) -> None:
    raise err


def _add_store_entry(tw: tarfile.TarFile, file: str, src: str) -> None:
    # strip the temporary path and re-root under the store prefix
    rel = os.path.relpath(file, src).replace(os.sep, "/")
    info = tw.gettarinfo(file, arcname=STORE_PREFIX + rel)
    if info is None:
        logger.debug(f"Skipping unsupported file type: {file}")
        return

    logger.debug(f"store: {info.name} ({info.size} bytes)")
    if info.isreg():
        with open(file, "rb") as f:
            tw.addfile(info, f)
    else:
        tw.addfile(info)


def store_snapshot(ctd, out) -> None:
    """
    Write a tarball of the content store of ``ctd`` to ``out``.

    Args:
        ctd: Containerd instance, normally after one or more fetches
        out: Binary file-like object, written sequentially

    Raises:
        ArchiveError: if the store cannot be read or the tarball cannot be written

    Layout:
        Directory headers for var/, var/lib/ and var/lib/containerd/ come
        first, followed by every entry below the instance's root directory
        renamed to var/lib/containerd/<relative path>. Entries appear in
        os.walk order and are not sorted.

    The tar writer is closed on every path, so whatever reached ``out`` is a
    terminated archive. A failed call still produces no usable output.
    """
    src = ctd.root_path
    if not os.path.isdir(src):
        raise ArchiveError(f"Content store not found: {src}")

    logger.info(f"Writing content store tarball from {src}")
    try:
        tw = tarfile.open(fileobj=out, mode="w|")
    except (OSError, tarfile.TarError) as e:
        raise ArchiveError(f"Cannot open tar stream: {e}") from e

    try:
        tar_prefix(tw, STORE_PREFIX)
        for dirpath, dirnames, filenames in os.walk(src, onerror=_raise_walk_error):
            for name in dirnames + filenames:
                _add_store_entry(tw, os.path.join(dirpath, name), src)
    except (OSError, tarfile.TarError) as e:
        logger.error(f"Failed to write content store tarball: {e}")
        _close_after_failure(tw)
        raise ArchiveError(f"Cannot archive {src}: {e}") from e
    except BaseException:
        _close_after_failure(tw)
        raise

    try:
        tw.close()
    except (OSError, tarfile.TarError) as e:
        raise ArchiveError(f"Cannot close tar stream: {e}") from e


def _close_after_failure(tw: tarfile.TarFile) -> None:
    # the original failure is what the caller sees
    try:
        tw.close()
    except (OSError, tarfile.TarError) as e:
        logger.error(f"Cannot close tar stream after failure: {e}")


def _add_bytes(tw: tarfile.TarFile, name: str, data: bytes) -> None:
    info = tarfile.TarInfo(name)
    info.mode = 0o644
    info.size = len(data)
    tw.addfile(info, io.BytesIO(data))


def bundle(ctd, path: str, image: str, config_bytes: bytes, trust: bool = False) -> bytes:
    """
    Output an image name and config file, and add the image to the store.

    Args:
        ctd: Running Containerd instance
        path: Relative directory for the bundle inside the tarball
        image: Image reference, stored verbatim (normalization only happens
            for the fetch)
        config_bytes: Contents of config.json, stored verbatim
        trust: Passed on to fetch()

    Returns:
        Tarball bytes with directory headers for ``path`` and the two files
        <path>/config.json and <path>/image

    Raises:
        ArchiveError: if the tarball cannot be built
        BinaryNotFoundError: if dist is not on PATH
        FetchError: if fetching the image fails

    The tarball is only returned if the fetch succeeds as well.
    """
    logger.debug(f"bundle: {path} {image} cfg: {config_bytes!r}")
    path = path.rstrip("/")

    out = io.BytesIO()
    try:
        with tarfile.open(fileobj=out, mode="w") as tw:
            tar_prefix(tw, path + "/")
            _add_bytes(tw, f"{path}/config.json", config_bytes)
            _add_bytes(tw, f"{path}/image", image.encode("utf-8"))
    except (OSError, tarfile.TarError) as e:
        logger.error(f"Failed to build bundle {path}: {e}")
        raise ArchiveError(f"Cannot build bundle {path}: {e}") from e

    fetch(ctd, image, trust)

    logger.info(f"Bundle ready: {path} ({len(out.getvalue())} bytes)")
    return out.getvalue()
