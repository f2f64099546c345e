#!/usr/bin/env python3
"""
main.py — Quick-start entry point.

Drop reference images into ``images/`` and tile images into ``tiles/``,
then run:

    python main.py batch

Or use the full CLI:

    python -m tile_mosaic.cli build --help
    python -m tile_mosaic.cli plan my_photo.jpg --tiles tiles
"""

from tile_mosaic.cli import app

if __name__ == "__main__":
    app()
