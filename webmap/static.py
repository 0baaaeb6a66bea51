"""
static.py - Maps a decoded request path to a file under the web-root.

Never raises: missing files, traversal attempts and read races all become
an HTTP status plus a small HTML body.
"""
import logging
import mimetypes
from pathlib import Path
from typing import NamedTuple, Optional

logger = logging.getLogger("webmap.static")

NOT_FOUND_BODY = b"<html><body>file not found</body></html>"
SERVER_ERROR_BODY = b"<html><body>internal server error</body></html>"
HTML_TYPE = "text/html; charset=utf-8"
DEFAULT_TYPE = "application/octet-stream"

# Checked before mimetypes so results don't depend on the platform's table
EXTENSION_TYPES = {
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".json": "application/json",
    ".webp": "image/webp",
}


class Response(NamedTuple):
    status: int
    body: bytes
    content_length: int
    content_type: str = HTML_TYPE


def not_found() -> Response:
    return Response(404, NOT_FOUND_BODY, len(NOT_FOUND_BODY))


def server_error() -> Response:
    return Response(500, SERVER_ERROR_BODY, len(SERVER_ERROR_BODY))


def resolve_under_root(root: Path, request_path: str) -> Optional[Path]:
    """Canonicalize root + request_path; None if the result escapes root."""
    if "\x00" in request_path:
        return None
    rel = request_path.replace("\\", "/").lstrip("/")
    try:
        resolved = (root / rel).resolve()
    except (OSError, RuntimeError, ValueError):
        return None
    if not resolved.is_relative_to(root):
        return None
    return resolved


def guess_type(path: Path) -> str:
    ctype = EXTENSION_TYPES.get(path.suffix.lower())
    if ctype is None:
        ctype, _ = mimetypes.guess_type(path.name)
    return ctype or DEFAULT_TYPE


class StaticFileHandler:
    def __init__(self, web_root):
        self.web_root = Path(web_root).resolve()

    def handle(self, request_path: str) -> Response:
        path = resolve_under_root(self.web_root, request_path)
        if path is None:
            logger.warning("Rejected path outside web-root: %r", request_path)
            return not_found()
        if not path.is_file():
            return not_found()

        try:
            body = path.read_bytes()
        except (FileNotFoundError, IsADirectoryError, PermissionError) as e:
            logger.info("Cannot serve %s: %s", request_path, e)
            return not_found()
        except OSError:
            logger.exception("I/O error reading %s", path)
            return server_error()

        return Response(200, body, len(body), guess_type(path))
