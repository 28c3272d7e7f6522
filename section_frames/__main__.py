import sys

from section_frames.cli import main

sys.exit(main())
