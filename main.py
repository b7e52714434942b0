#!/usr/bin/env python3
"""Main entry point for Solar Sync.

This file allows running the application directly with:
    python main.py

For full CLI usage, use:
    solarsync --help
"""

from solarsync.cli import cli

if __name__ == "__main__":
    cli()
