"""
Main entry point for BrowMap.

This script delegates to the modular application in `brow_map.app`.
Run `python main.py` or `python -m brow_map.app`.
"""

from brow_map.app import main

if __name__ == "__main__":
    main()
