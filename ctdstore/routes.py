"""
Flask application and HTTP endpoints.

Exposes fetch, store and bundle operations of the containerd instance stored
in app.config["CONTAINERD"].
"""

import io
import logging
from flask import Flask, abort, current_app, jsonify, make_response, request, send_file

from .errors import ArchiveError, BinaryNotFoundError, FetchError, InvalidReferenceError
from .naming import normalize_image_name, validate_image_ref

logger = logging.getLogger(__name__)

# Create Flask app
app = Flask(__name__)
app.config["CONTAINERD"] = None


def _containerd():
    ctd = current_app.config.get("CONTAINERD")
    if ctd is None:
        logger.error("No containerd instance configured")
        abort(503, "containerd is not running")
    return ctd


def _trust_requested() -> bool:
    return request.args.get("trust", "").lower() in ("1", "true", "yes")


def _validated(image: str) -> str:
    try:
        validate_image_ref(image)
    except InvalidReferenceError as e:
        abort(400, str(e))
    return image


def _abort_for(e: Exception):
    """Translate a store error into an HTTP error response."""
    if isinstance(e, FetchError):
        abort(502, str(e))
    if isinstance(e, (BinaryNotFoundError, ArchiveError)):
        abort(500, str(e))
    raise e


# -------------------------------
# Endpoints
# -------------------------------


@app.route("/v1/")
def v1_root():
    """
    Health endpoint.

    Returns:
        JSON {"status": "ok", "pid": <daemon pid>, "work_dir": <path>}
    """
    ctd = _containerd()
    return jsonify({"status": "ok", "pid": ctd.pid, "work_dir": ctd.work_dir})


@app.route("/v1/images/<path:image>/fetch", methods=["POST"])
def fetch_image(image):
    """
    Fetch an image into the content store.

    Args:
        image: Image reference, short names are normalized

    Query Parameters:
        trust: "1"/"true" to request trust verification (not yet implemented)

    Returns:
        JSON {"image": <normalized name>}

    Raises:
        400: Invalid image reference
        500: dist missing from PATH
        502: dist failed
        503: No containerd instance
    """
    _validated(image)
    ctd = _containerd()
    logger.info(f"Fetch requested: image='{image}'")

    try:
        ctd.fetch(image, _trust_requested())
    except (BinaryNotFoundError, FetchError) as e:
        _abort_for(e)

    return jsonify({"image": normalize_image_name(image)})


@app.route("/v1/store")
def get_store():
    """
    Download the content store as a tarball rooted at var/lib/containerd/.

    Raises:
        500: Tarball could not be written
        503: No containerd instance
    """
    ctd = _containerd()
    logger.info("Store requested")

    out = io.BytesIO()
    try:
        ctd.store(out)
    except ArchiveError as e:
        _abort_for(e)

    size = out.tell()
    out.seek(0)
    resp = send_file(out, mimetype="application/x-tar", download_name="containerd.tar")
    logger.info(f"Store sent: {size} bytes")
    return resp


@app.route("/v1/bundles/<path:bundle_path>", methods=["POST"])
def create_bundle(bundle_path):
    """
    Build a bundle tarball and fetch its image.

    Args:
        bundle_path: Directory of the bundle inside the tarball

    Query Parameters:
        image: Image reference (required), stored verbatim
        trust: "1"/"true" to request trust verification (not yet implemented)

    Request Body:
        Contents of config.json, stored verbatim

    Returns:
        application/x-tar with <bundle_path>/config.json and <bundle_path>/image

    Raises:
        400: Missing or invalid image
        500: Tarball could not be built or dist missing
        502: dist failed
        503: No containerd instance
    """
    image = request.args.get("image", "")
    _validated(image)
    ctd = _containerd()
    logger.info(f"Bundle requested: path='{bundle_path}', image='{image}'")

    try:
        blob = ctd.bundle(bundle_path, image, request.get_data(), _trust_requested())
    except (ArchiveError, BinaryNotFoundError, FetchError) as e:
        _abort_for(e)

    resp = make_response(blob)
    resp.headers["Content-Type"] = "application/x-tar"
    resp.headers["Content-Length"] = len(blob)
    return resp
