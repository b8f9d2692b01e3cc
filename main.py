#!/usr/bin/env python3
"""
main.py — Quick-start entry point.

    python main.py build reference.jpg tiles/

Or use the full CLI:

    python -m photo_mosaic.cli build --help
    python -m photo_mosaic.cli preview reference.jpg tiles/
"""

from photo_mosaic.cli import app

if __name__ == "__main__":
    app()
