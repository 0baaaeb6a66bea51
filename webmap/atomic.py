"""
atomic.py - Write-then-replace helpers so the web server never serves a half-written file.
"""
import os
import tempfile
from pathlib import Path
from typing import Union

PathLike = Union[str, Path]


def write_bytes_atomic(data: bytes, path: PathLike) -> Path:
    """Write bytes to a temp file beside `path`, then os.replace() it into place.

    The temp file lives in the same directory so the replace never crosses a
    filesystem boundary. On failure the temp file is removed and the error re-raised.
    """
    path = Path(path)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.tmp.")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        # mkstemp creates 0600; web-root files are meant to be world-readable
        os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise
    return path


def write_text_atomic(text: str, path: PathLike, encoding: str = "utf-8") -> Path:
    return write_bytes_atomic(text.encode(encoding), path)
