"""
webmap - Embedded static file server for pre-rendered map tiles.
"""
from .assets import AssetEntry, BootstrapReport, bootstrap_assets, load_asset_catalog
from .config import WebMapConfig, load_config
from .listener import (
    BindPrefix,
    InvalidBindPrefix,
    ListenerStartError,
    ListenerState,
    WebMapListener,
    parse_bind_prefix,
    start_listener,
    stop_listener,
)
from .origin import Vec3i, compute_origin_offset, write_origin_info
from .static import Response, StaticFileHandler
from .system import WebMapSystem

__version__ = "0.1.0"
