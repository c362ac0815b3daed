"""CLI entry point for each.

Enables invocation via `python -m each`.
"""

import sys

from each.cli.app import main

if __name__ == "__main__":
    sys.exit(main())
