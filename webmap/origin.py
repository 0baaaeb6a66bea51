"""
origin.py - Writes worldOriginOffset.json so the browser map can line tiles up with world coordinates.

The offset is spawn position minus the center of the map volume. The file is
rewritten on every world load.
"""
import json
import logging
from pathlib import Path
from typing import NamedTuple, Optional, Sequence

from .atomic import write_text_atomic

logger = logging.getLogger("webmap.origin")

ORIGIN_FILENAME = "worldOriginOffset.json"
DEFAULT_DATA_DIR = "data"


class Vec3i(NamedTuple):
    x: int
    y: int
    z: int


def _half(n: int) -> int:
    # integer division truncating toward zero, not floor
    return n // 2 if n >= 0 else -(-n // 2)


def compute_origin_offset(map_size: Sequence[int], spawn_position: Sequence[int]) -> Vec3i:
    center = [_half(int(c)) for c in map_size]
    spawn = [int(c) for c in spawn_position]
    if len(center) != 3 or len(spawn) != 3:
        raise ValueError("map_size and spawn_position must both have three components")
    return Vec3i(*(s - c for s, c in zip(spawn, center)))


def origin_info_json(offset: Sequence[int]) -> str:
    return json.dumps({"worldOriginOffset": list(offset)}, separators=(",", ":"))


def write_origin_info(
    map_size: Sequence[int],
    spawn_position: Sequence[int],
    web_root,
    data_dir: str = DEFAULT_DATA_DIR,
) -> Optional[Path]:
    """Compute the origin offset and replace web_root/data_dir/worldOriginOffset.json.

    Returns the written path, or None when the write failed (logged, not raised).
    """
    offset = compute_origin_offset(map_size, spawn_position)
    target_dir = Path(web_root) / data_dir
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        path = write_text_atomic(origin_info_json(offset), target_dir / ORIGIN_FILENAME)
    except OSError as e:
        logger.error("Could not write %s in %s: %s", ORIGIN_FILENAME, target_dir, e)
        return None
    logger.info("World origin offset (%d, %d, %d) written to %s", *offset, path)
    return path
