"""
Configuration module for the containerd store.

Loads all configuration from environment variables with sensible defaults.
"""

import os


class Config:
    """
    Store configuration from environment variables.

    Loads all configuration values from environment variables with sensible defaults.
    All settings can be overridden by setting the corresponding environment variable.
    """

    def __init__(self):
        """
        Initialize configuration from environment variables.

        Environment Variables:
            LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR). Default: INFO
            FLASK_HOST: Server bind address. Default: 0.0.0.0
            FLASK_PORT: Server bind port. Default: 6444
            CONTAINERD_BIN: Name or path of the containerd binary. Default: containerd
            DIST_BIN: Name or path of the dist fetch tool. Default: dist
            WORK_DIR_PREFIX: Prefix for the private temporary directory. Default: moby-ctd
            MAX_IMAGE_REF_LENGTH: Maximum image reference length. Default: 255
        """
        # Logging
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

        # Server
        self.FLASK_HOST = os.getenv("FLASK_HOST", "0.0.0.0")
        self.FLASK_PORT = int(os.getenv("FLASK_PORT", "6444"))

        # External tools
        self.CONTAINERD_BIN = os.getenv("CONTAINERD_BIN", "containerd")
        self.DIST_BIN = os.getenv("DIST_BIN", "dist")

        # Daemon instance
        self.WORK_DIR_PREFIX = os.getenv("WORK_DIR_PREFIX", "moby-ctd")

        # Validation limits
        self.MAX_IMAGE_REF_LENGTH = int(os.getenv("MAX_IMAGE_REF_LENGTH", "255"))

    def __repr__(self):
        """String representation for logging."""
        return (
            f"Config(LOG_LEVEL={self.LOG_LEVEL}, "
            f"FLASK_HOST={self.FLASK_HOST}, "
            f"FLASK_PORT={self.FLASK_PORT}, "
            f"CONTAINERD_BIN={self.CONTAINERD_BIN}, "
            f"DIST_BIN={self.DIST_BIN})"
        )


# Global config instance
config = Config()
