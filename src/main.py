"""Headless runner: load the buildings around one camera position."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from domain.profiles import load_settings
from domain.settings import TileLoadSettings
from infrastructure.http import WfsFeatureClient, session_from_settings
from services.orchestrator import TileLoadOrchestrator
from services.scene import InMemorySceneHost, LoggingNotifier, StaticViewport
from shared.diagnostics import log_memory_usage

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> Path:
    """Configure logging to stdout and a log file; returns the log file path."""
    state_home = Path(os.getenv('XDG_STATE_HOME') or Path.home() / '.local' / 'state')
    log_dir = state_home / 'building-tiles' / 'log'
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / 'building_tiles.log'

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(str(log_file), encoding='utf-8'),
        ],
    )
    return log_file


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Load building footprints around a camera position from a WFS layer'
    )
    parser.add_argument('lon', type=float, help='Camera footprint center longitude')
    parser.add_argument('lat', type=float, help='Camera footprint center latitude')
    parser.add_argument(
        '--height', type=float, default=1500.0, help='Camera height above ground (m)'
    )
    parser.add_argument('--profile', help='Profile name or path to a .toml file')
    parser.add_argument('--wfs-url', help='Override the WFS endpoint')
    parser.add_argument('--layer', help='Override the feature type name')
    parser.add_argument(
        '--passes',
        type=int,
        default=0,
        help='Reconciliation passes (0 = until every required tile is loaded)',
    )
    parser.add_argument('-v', '--verbose', action='store_true')
    return parser


def _settings_from_args(args: argparse.Namespace) -> TileLoadSettings:
    settings = load_settings(args.profile) if args.profile else TileLoadSettings()
    overrides = {}
    if args.wfs_url:
        overrides['wfs_url'] = args.wfs_url
    if args.layer:
        overrides['layer_name'] = args.layer
    if overrides:
        settings = settings.model_copy(update=overrides)
    return settings


async def run(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    scene = InMemorySceneHost()
    viewport = StaticViewport(args.lon, args.lat, args.height)

    async with session_from_settings(settings) as session:
        client = WfsFeatureClient.from_settings(session, settings)
        loader = TileLoadOrchestrator(
            scene, viewport, client, settings, notifier=LoggingNotifier()
        )
        # Each pass can only start max_concurrent_loads fetches
        max_passes = args.passes or (2 * settings.neighborhood_radius + 1) ** 2
        for n in range(max_passes):
            report = loader.update_visible_tiles()
            await loader.wait_idle()
            logger.info(
                'Pass %d: state=%s started=%d skipped=%d visible=%d',
                n + 1,
                report.state.value,
                len(report.started),
                len(report.skipped),
                loader.visible_count,
            )
            if not args.passes and not report.started and not report.skipped:
                break
        await loader.aclose()

    stats = loader.stats()
    logger.info('Cache: %s', stats['cache'])
    logger.info('Fetcher: %s', stats['fetcher'])
    log_memory_usage('done')
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    logger.info('Starting building tile loader at lon=%s lat=%s', args.lon, args.lat)
    return asyncio.run(run(args))


if __name__ == '__main__':
    sys.exit(main())
