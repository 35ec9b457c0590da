"""
Fetch module for the containerd store.

Runs the external dist tool against a running containerd instance to pull an
image into its content store.
"""

import logging
import shutil
import subprocess

from .config import config
from .errors import BinaryNotFoundError, FetchError
from .naming import normalize_image_name

logger = logging.getLogger(__name__)


def fetch(ctd, image: str, trust: bool = False) -> None:
    """
    Fetch an image into the content store of ``ctd``.

    Args:
        ctd: Running Containerd instance
        image: Image reference, short names are normalized first
        trust: Request trust verification. Accepted but not implemented;
            a warning is logged and the image is fetched without it.

    Raises:
        BinaryNotFoundError: if dist is not on PATH
        FetchError: if dist cannot be spawned or exits non-zero

    Behavior:
        - stdout and stderr of dist go to the instance's output sink
        - Blocks until dist exits, there is no timeout
    """
    logger.debug(f"fetch: {image}")
    dist = shutil.which(config.DIST_BIN)
    if dist is None:
        raise BinaryNotFoundError(f"Cannot find {config.DIST_BIN} in path")

    if trust:
        logger.warning(f"Trust verification not yet implemented, fetching {image} unverified")

    name = normalize_image_name(image)
    cmd = [
        dist,
        "--address",
        ctd.socket_path,
        "--root",
        ctd.root_path,
        "fetch",
        name,
    ]
    logger.info(f"Fetching {name} into {ctd.work_dir}")
    logger.debug(f"Running command: {' '.join(cmd)}")

    try:
        subprocess.run(cmd, check=True, stdout=ctd.output, stderr=ctd.output)
    except subprocess.CalledProcessError as e:
        logger.error(f"dist fetch of {name} failed with exit code {e.returncode}")
        raise FetchError(f"Failed to fetch {name}: exit code {e.returncode}", e.returncode) from e
    except OSError as e:
        logger.error(f"Cannot run {dist}: {e}")
        raise FetchError(f"Failed to fetch {name}: {e}") from e

    logger.info(f"Fetch complete: {name}")
