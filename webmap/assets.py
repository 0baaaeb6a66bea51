"""
assets.py - Copies the bundled web map template into the live web-root.

Files that already exist are left alone so user edits survive restarts,
unless overwrite is set (development mode).
"""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from tqdm import tqdm

from .atomic import write_bytes_atomic

logger = logging.getLogger("webmap.assets")

TEMPLATE_DIR = Path(__file__).resolve().parent / "template"

UNREADABLE_MSG = "asset unreadable, the web map may be broken"


@dataclass(frozen=True)
class AssetEntry:
    """One bundled file: POSIX path relative to the web-root, plus its bytes (None if unreadable)."""
    path: str
    data: Optional[bytes]


@dataclass
class BootstrapReport:
    written: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    warnings: List[Tuple[str, str]] = field(default_factory=list)  # (asset path, message)

    @property
    def ok(self) -> bool:
        return not self.warnings

    def warn(self, path: str, message: str) -> None:
        self.warnings.append((path, message))
        logger.warning("Asset %s: %s", path or "<empty>", message)


def load_asset_catalog(directory=TEMPLATE_DIR) -> List[AssetEntry]:
    """Walk a template directory and return its files as asset entries, sorted by path."""
    root = Path(directory)
    if not root.is_dir():
        raise FileNotFoundError(f"Asset directory not found: {root}")
    entries = []
    for p in sorted(root.rglob("*")):
        if not p.is_file():
            continue
        rel = p.relative_to(root).as_posix()
        try:
            data = p.read_bytes()
        except OSError as e:
            logger.error("Failed to read bundled asset %s: %s", rel, e)
            data = None
        entries.append(AssetEntry(rel, data))
    logger.debug("Loaded %d assets from %s", len(entries), root)
    return entries


def _destination(web_root: Path, rel_path: str) -> Optional[Path]:
    dest = (web_root / rel_path.lstrip("/")).resolve()
    if dest == web_root or not dest.is_relative_to(web_root):
        return None
    return dest


def bootstrap_assets(
    assets: Iterable[AssetEntry],
    web_root,
    overwrite: bool = False,
    progress: bool = False,
) -> BootstrapReport:
    """Populate web_root from the asset catalog. Per-file problems become report warnings."""
    web_root = Path(web_root).resolve()
    report = BootstrapReport()

    for asset in tqdm(assets, unit="asset", desc="Bootstrapping web map", disable=not progress):
        if not asset.path:
            report.warn(asset.path, "empty asset path")
            continue
        if asset.data is None:
            report.warn(asset.path, UNREADABLE_MSG)
            continue

        dest = _destination(web_root, asset.path)
        if dest is None:
            report.warn(asset.path, "resolves outside the web-root")
            continue
        if not overwrite and dest.exists():
            report.skipped.append(asset.path)
            continue

        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            report.warn(asset.path, f"cannot create directory {dest.parent}: {e}")
            continue
        try:
            write_bytes_atomic(asset.data, dest)
        except OSError as e:
            report.warn(asset.path, f"write failed: {e}")
            continue
        report.written.append(asset.path)

    logger.info(
        "Web map bootstrap: %d written, %d kept, %d warnings",
        len(report.written), len(report.skipped), len(report.warnings),
    )
    return report
