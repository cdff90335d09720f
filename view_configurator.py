#!/usr/bin/env python3
"""Launch the product viewer in a viser server."""

import argparse
import sys
from pathlib import Path
import logging

from view_engine.asset_cache import DEFAULT_VIEW_GROUPS, AssetPreloadCache, ImageFileFetcher
from view_engine.config import ViewerSettings, load_settings
from view_engine.view_state import ViewStateMachine
from view_engine.viser_viewer import ViserViewer


def main():
    """Load settings, start preloading the selected view and run the viewer."""
    # Set up logging
    logging.basicConfig(level=logging.INFO, format='%(levelname)s - %(name)s - %(message)s')
    logger = logging.getLogger("view_configurator")

    parser = argparse.ArgumentParser(description="Interactive product viewer")
    parser.add_argument("--port", type=int, default=8080,
                        help="Port for the viser server")
    parser.add_argument("--assets", type=str, default="car-images",
                        help="Directory holding the per-view image folders")
    parser.add_argument("--view", choices=sorted(DEFAULT_VIEW_GROUPS), default="exterior",
                        help="View group loaded before the cinematic demo may start")
    parser.add_argument("--config", type=str, default=None,
                        help="JSON settings file")
    parser.add_argument("--no-intro", action="store_true",
                        help="Skip the intro camera sweep")
    parser.add_argument("--fps", type=float, default=60.0,
                        help="Render loop rate")
    args = parser.parse_args()

    if args.config:
        try:
            settings = load_settings(args.config)
        except FileNotFoundError as e:
            logger.error(f"Cannot load settings: {e}")
            return 1
    else:
        settings = ViewerSettings()

    if args.no_intro:
        settings.timing.intro_enabled = False

    assets_path = Path(args.assets)
    if not assets_path.exists():
        logger.warning(f"Assets directory not found at {assets_path}, placeholders will be shown")

    cache = AssetPreloadCache(fetcher=ImageFileFetcher(assets_path))
    engine = ViewStateMachine(settings=settings, cache=cache)

    active_group = DEFAULT_VIEW_GROUPS[args.view]
    engine.start_loading(active_group.image_paths())
    cache.preload_groups(group for group in DEFAULT_VIEW_GROUPS.values() if group is not active_group)

    viewer = ViserViewer(engine, port=args.port, fps=args.fps)
    logger.info(f"Open http://localhost:{args.port} in your browser")

    try:
        viewer.run()
    finally:
        cache.shutdown(wait=False)
    return 0


if __name__ == "__main__":
    sys.exit(main())
