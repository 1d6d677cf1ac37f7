#!/usr/bin/env python3
"""
Cartographer - Site Structure Discovery

Entry point for running the CLI from a source checkout.

Usage:
    python main.py crawl https://example.com
    python main.py crawl https://example.com --max-depth 5 --mode http
"""

import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent / "src"))

from cartographer.cli import cli


if __name__ == "__main__":
    cli()
