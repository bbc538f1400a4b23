"""Allow ``python -m drive_fetch``."""

import sys

from drive_fetch.cli import main

sys.exit(main())
