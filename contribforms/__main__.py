"""
Module entrypoint for the contribforms CLI.

This file exists so that `python -m contribforms ...` works when the
console-script wrapper is not installed. It contains no business logic.
"""

from __future__ import annotations

from contribforms.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
