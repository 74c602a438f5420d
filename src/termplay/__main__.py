"""Allow running the player with ``python -m termplay``."""

from __future__ import annotations

import sys

from termplay.app import main

if __name__ == "__main__":
    sys.exit(main())
