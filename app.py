"""
HTTP front end for a private containerd instance.

Starts containerd in an isolated temporary directory and serves its fetch,
store and bundle operations over HTTP. The daemon and its directory are
removed when the server stops.

Endpoints:
    - GET  /v1/ - Health, daemon pid and work directory
    - POST /v1/images/<image>/fetch - Fetch an image into the content store
    - GET  /v1/store - Content store tarball (var/lib/containerd/...)
    - POST /v1/bundles/<path>?image=<ref> - Bundle tarball, body is config.json

Environment Variables:
    LOG_LEVEL, FLASK_HOST, FLASK_PORT, CONTAINERD_BIN, DIST_BIN,
    WORK_DIR_PREFIX, MAX_IMAGE_REF_LENGTH

Example:
    $ LOG_LEVEL=DEBUG python app.py
    $ curl -X POST localhost:6444/v1/images/alpine:3.5/fetch
    $ curl -o store.tar localhost:6444/v1/store
"""

import logging
import sys

from ctdstore.config import config
from ctdstore.routes import app
from ctdstore.supervisor import Containerd

# Configure logging
logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def main():
    """Main entry point for the containerd store service."""
    debug_mode = logger.getEffectiveLevel() == logging.DEBUG
    logger.info(f"Starting containerd store service on {config.FLASK_HOST}:{config.FLASK_PORT}")
    logger.info(f"Configuration: {config}")
    logger.info(f"Log level: {logging.getLevelName(logger.getEffectiveLevel())}")

    ctd = Containerd.start(sys.stderr)
    app.config["CONTAINERD"] = ctd
    try:
        # the reloader would start a second daemon in its child process
        app.run(host=config.FLASK_HOST, port=config.FLASK_PORT, debug=debug_mode, use_reloader=False)
    finally:
        app.config["CONTAINERD"] = None
        ctd.close()


if __name__ == "__main__":
    main()
