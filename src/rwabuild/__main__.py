# src/rwabuild/__main__.py
"""Module entry point for ``python -m rwabuild``."""

import sys

from rwabuild.app import main

if __name__ == "__main__":
    sys.exit(main())
