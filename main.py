"""
Entry point: section views and alignment for building model entities.

Usage:
    python main.py frame model.json wall-1
    python main.py elevate model.json --categories Doors --save out.json
    python main.py parallel model.json wall-1 door-7

See `section_frames.cli` for all options.
"""

import sys

from section_frames.cli import main

if __name__ == "__main__":
    sys.exit(main())
