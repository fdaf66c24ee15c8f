"""Convenience script to run the tool using ``python autofetch.py URL``."""
from __future__ import annotations

from autofetch.cli import main


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
