from __future__ import annotations

import logging
import sys

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger once; later calls only adjust the level."""
    root = logging.getLogger()
    root.setLevel(level)
    if any(getattr(h, "_tabletalk", False) for h in root.handlers):
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_FORMAT))
    handler._tabletalk = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    # request lines come from uvicorn.access already
    logging.getLogger("httpx").setLevel(logging.WARNING)


__all__ = ["setup_logging"]
