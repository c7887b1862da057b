#!/usr/bin/env python3
"""CLI wrapper for building structural motifs from a Stockholm seed file.

All implementation lives in :mod:`src.rnamotif.cli`.
"""

from src.rnamotif.cli import main

if __name__ == "__main__":
    main()
