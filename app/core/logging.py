from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install one stream handler on the root logger.

    Safe to call more than once (uvicorn reloads, test sessions).
    """
    root = logging.getLogger()
    root.setLevel(level)
    if any(getattr(h, "_fieldwork", False) for h in root.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._fieldwork = True  # type: ignore[attr-defined]
    root.addHandler(handler)
