"""
Entry point for running terra-inform as a module.

Allows running terra-inform with:
    python -m terrainform plan
"""

import sys

from terrainform.cli import main

if __name__ == "__main__":
    sys.exit(main())
