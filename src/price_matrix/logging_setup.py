from __future__ import annotations

import logging
import sys


def setup_logging(level: str = "WARNING") -> None:
    """Attach a single stderr handler to the root logger; later calls only adjust the level."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.WARNING))
    if root.handlers:
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)-8s %(name)s: %(message)s", datefmt="%H:%M:%S"))
    root.addHandler(handler)
