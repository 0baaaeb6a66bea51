#!/usr/bin/env python3
"""Serve the web map directory over HTTP until Ctrl+C.

Copies the bundled template into the web-root first (existing files are kept
unless --dev), and optionally writes worldOriginOffset.json from --map-size/--spawn.
"""
import argparse
import logging
import sys
import time
from pathlib import Path

from webmap.config import WebMapConfig, load_config
from webmap.listener import InvalidBindPrefix, ListenerStartError
from webmap.system import WebMapSystem

logger = logging.getLogger("webmap")


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Embedded static web map server")
    p.add_argument("--config", type=Path, help="JSON config file (WebMapPath, WebServerUrlPrefix, ...)")
    p.add_argument("--root", type=Path, help="web-root directory to serve")
    p.add_argument("--prefix", help="bind prefix, e.g. http://+:8080/")
    p.add_argument("--assets", type=Path, help="template directory copied into the web-root")
    p.add_argument("--data-dir", help="web-root sub-directory for worldOriginOffset.json")
    p.add_argument("--dev", action="store_true", default=None, help="overwrite existing assets on startup")
    p.add_argument("--concurrent", action="store_true", default=None, help="handle each connection on its own thread")
    p.add_argument("--map-size", type=int, nargs=3, metavar=("X", "Y", "Z"), help="world map size")
    p.add_argument("--spawn", type=int, nargs=3, metavar=("X", "Y", "Z"), help="world spawn position")
    p.add_argument("-v", "--verbose", action="store_true", help="log every request")
    args = p.parse_args(argv)
    if (args.map_size is None) != (args.spawn is None):
        p.error("--map-size and --spawn must be given together")
    return args


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)-7s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        config = load_config(args.config) if args.config else WebMapConfig()
        config = config.with_overrides(
            web_root=args.root,
            bind_prefix=args.prefix,
            asset_dir=args.assets,
            map_api_data_path=args.data_dir,
            overwrite_assets=args.dev,
            concurrent=args.concurrent,
        )
        system = WebMapSystem(config).start(progress=True)
    except (InvalidBindPrefix, ListenerStartError) as e:
        logger.error("Cannot start web map: %s", e)
        return 1
    except Exception:
        logger.exception("Fatal error")
        return 1

    if args.map_size is not None:
        system.on_save_game_loaded(args.map_size, args.spawn)

    logger.info("Serving %s at %s; stop with Ctrl+C.", system.web_root, system.listener.url)
    try:
        while system.listener.is_listening:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Stopped by user")
    finally:
        system.on_shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main())
