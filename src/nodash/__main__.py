"""
Package entry point for python -m execution.

USAGE:
    python -m nodash record start      # Begin recording events
    python -m nodash record stop       # Finish and print the snapshot
    python -m nodash replay FILE       # Replay a saved snapshot
    python -m nodash serve             # Run the analytics server
"""

import sys

from nodash.cli import main

if __name__ == "__main__":
    sys.exit(main())
