"""Module entrypoint for running gcptts as ``python -m gcptts``."""

from __future__ import annotations

from gcptts.cli import main


if __name__ == "__main__":
    main()
