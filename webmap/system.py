"""
system.py - Wires the web map into a host: bootstrap, listen, react to world-load and shutdown.

Nothing is looked up globally; the host hands over a config, an optional asset
catalog, and two hook registration callables.
"""
import logging
from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence

from .assets import AssetEntry, BootstrapReport, bootstrap_assets, load_asset_catalog
from .config import WebMapConfig, get_or_create_subdirectory
from .listener import WebMapListener
from .origin import write_origin_info

logger = logging.getLogger("webmap.system")

SaveLoadedHook = Callable[[Sequence[int], Sequence[int]], Optional[Path]]
ShutdownHook = Callable[[], None]


class WebMapSystem:
    def __init__(self, config: WebMapConfig, assets: Optional[Iterable[AssetEntry]] = None):
        self.config = config
        self.assets = assets
        self.web_root: Optional[Path] = None
        self.listener: Optional[WebMapListener] = None
        self.bootstrap_report: Optional[BootstrapReport] = None

    def start(
        self,
        register_save_loaded: Optional[Callable[[SaveLoadedHook], None]] = None,
        register_shutdown: Optional[Callable[[ShutdownHook], None]] = None,
        progress: bool = False,
    ) -> "WebMapSystem":
        """Populate the web-root, start the listener, then register the lifecycle hooks.

        Startup problems (web-root uncreatable, bad prefix, port in use) propagate
        and nothing is left running.
        """
        self.web_root = get_or_create_subdirectory(self.config.web_root)

        assets = self.assets
        if assets is None:
            try:
                assets = load_asset_catalog(self.config.asset_dir)
            except FileNotFoundError as e:
                logger.error("%s; the web map will be served without bundled assets", e)
                assets = []
        self.bootstrap_report = bootstrap_assets(
            assets, self.web_root, overwrite=self.config.overwrite_assets, progress=progress,
        )

        listener = WebMapListener(
            self.web_root, concurrent=self.config.concurrent,
            poll_interval=self.config.poll_interval,
            request_timeout=self.config.request_timeout,
        )
        listener.start(self.config.bind_prefix)
        self.listener = listener

        if register_save_loaded is not None:
            register_save_loaded(self.on_save_game_loaded)
        if register_shutdown is not None:
            register_shutdown(self.on_shutdown)
        return self

    def on_save_game_loaded(self, map_size: Sequence[int], spawn_position: Sequence[int]) -> Optional[Path]:
        if self.web_root is None:
            logger.warning("World loaded before the web map started; origin offset not written")
            return None
        return write_origin_info(map_size, spawn_position, self.web_root, self.config.map_api_data_path)

    def on_shutdown(self) -> None:
        if self.listener is not None:
            self.listener.stop()
