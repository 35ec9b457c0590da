"""
Image reference handling for the containerd store.

Provides normalization of Docker-style short names and validation of
references received from clients.
"""

import logging
import re

from .config import config
from .errors import InvalidReferenceError

logger = logging.getLogger(__name__)


def normalize_image_name(image: str) -> str:
    """
    Take a Docker-style repository name and return a fully qualified name.

    Args:
        image: Short or qualified image reference

    Returns:
        Reference of the form "registry/namespace/name:tag"

    Rules:
        - One path component gets "docker.io/library/" prepended
        - Two path components get "docker.io/" prepended
        - Three or more components are left as they are
        - A missing tag becomes ":latest"

    Examples:
        >>> normalize_image_name("alpine")
        'docker.io/library/alpine:latest'

        >>> normalize_image_name("library/alpine")
        'docker.io/library/alpine:latest'

        >>> normalize_image_name("docker.io/library/alpine:3.5")
        'docker.io/library/alpine:3.5'
    """
    slash = image.split("/", 2)
    if len(slash) == 1:
        image = "docker.io/library/" + image
    elif len(slash) == 2:
        image = "docker.io/" + image

    colon = image.split(":", 1)
    if len(colon) != 2:
        image = image + ":latest"

    return image


def validate_image_ref(ref: str) -> None:
    """
    Validate an image reference before it reaches a subprocess.

    Args:
        ref: Image reference to validate (e.g., "alpine" or "docker.io/library/alpine:3.5")

    Raises:
        InvalidReferenceError: if the reference is empty, too long or has
            characters outside the allowed set

    Validation Rules:
        - Must be 1-{MAX_IMAGE_REF_LENGTH} characters (configurable)
        - Only alphanumerics, dots (.), hyphens (-), underscores (_),
          slashes (/), colons (:) and at signs (@)
        - Must not start with a hyphen, so it cannot be read as a flag
    """
    if not ref or len(ref) > config.MAX_IMAGE_REF_LENGTH:
        logger.warning(f"Invalid image reference length: {len(ref)}")
        raise InvalidReferenceError(
            f"Invalid image reference: must be 1-{config.MAX_IMAGE_REF_LENGTH} characters"
        )

    if not re.fullmatch(r'[a-zA-Z0-9._/:@][a-zA-Z0-9._/:@-]*', ref):
        logger.warning(f"Invalid image reference format: {ref}")
        raise InvalidReferenceError(
            "Invalid image reference: only alphanumeric, dots, hyphens, underscores, "
            "slashes, colons and @ allowed"
        )

    logger.debug(f"Image reference validated: {ref}")
