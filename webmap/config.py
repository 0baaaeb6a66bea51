"""
config.py - Web map settings: defaults, optional JSON config file, sub-directory helper.
"""
import json
import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

from .assets import TEMPLATE_DIR
from .listener import DEFAULT_POLL_INTERVAL, DEFAULT_REQUEST_TIMEOUT
from .origin import DEFAULT_DATA_DIR

logger = logging.getLogger("webmap.config")

# ---- Defaults ----
DEFAULT_WEB_ROOT = Path("webmap")
DEFAULT_BIND_PREFIX = "http://+:8080/"

# JSON key -> field name; keys follow the mod config file's spelling
CONFIG_KEYS = {
    "WebMapPath": "web_root",
    "WebServerUrlPrefix": "bind_prefix",
    "MapApiDataPath": "map_api_data_path",
    "AssetPath": "asset_dir",
    "OverwriteAssets": "overwrite_assets",
    "ConcurrentRequests": "concurrent",
    "PollInterval": "poll_interval",
    "RequestTimeout": "request_timeout",
}


@dataclass(frozen=True)
class WebMapConfig:
    web_root: Path = DEFAULT_WEB_ROOT
    bind_prefix: str = DEFAULT_BIND_PREFIX
    map_api_data_path: str = DEFAULT_DATA_DIR
    asset_dir: Path = TEMPLATE_DIR
    overwrite_assets: bool = False
    concurrent: bool = False
    poll_interval: float = DEFAULT_POLL_INTERVAL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    def with_overrides(self, **overrides: Any) -> "WebMapConfig":
        """Return a copy with every non-None override applied (argparse leaves unset flags as None)."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def _coerce(name: str, value: Any) -> Any:
    if name in ("web_root", "asset_dir"):
        return Path(value)
    if name in ("overwrite_assets", "concurrent"):
        if not isinstance(value, bool):
            raise ValueError(f"{name} must be true or false, got {value!r}")
        return value
    if name in ("poll_interval", "request_timeout"):
        value = float(value)
        if value <= 0:
            raise ValueError(f"{name} must be positive")
        return value
    return str(value)


def config_from_dict(raw: Dict[str, Any], base_dir: Optional[Path] = None) -> WebMapConfig:
    """Build a config from JSON-style keys. Relative paths are taken against base_dir."""
    known = {f.name for f in fields(WebMapConfig)}
    values: Dict[str, Any] = {}
    for key, value in raw.items():
        name = CONFIG_KEYS.get(key, key)
        if name not in known:
            logger.warning("Ignoring unknown config key %r", key)
            continue
        values[name] = _coerce(name, value)

    if base_dir is not None:
        for name in ("web_root", "asset_dir"):
            if name in values and not values[name].is_absolute():
                values[name] = base_dir / values[name]
    return WebMapConfig(**values)


def load_config(path) -> WebMapConfig:
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    if not isinstance(raw, dict):
        raise ValueError(f"{path}: expected a JSON object at the top level")
    cfg = config_from_dict(raw, base_dir=path.resolve().parent)
    logger.debug("Loaded config from %s", path)
    return cfg


def get_or_create_subdirectory(root, name: str = "") -> Path:
    """Return root/name as an absolute path, creating it (and parents) if missing."""
    d = (Path(root) / name).resolve()
    d.mkdir(parents=True, exist_ok=True)
    return d
