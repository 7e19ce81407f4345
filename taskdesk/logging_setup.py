from __future__ import annotations

import logging
import sys

def setup_logging(level: str = "INFO") -> logging.Logger:
    """
    Configure the root logger with a single stderr handler.

    Safe to call more than once (create_app runs per test).
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(numeric_level)

    has_handler = any(getattr(h, "_taskdesk", False) for h in root.handlers)
    if not has_handler:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        handler._taskdesk = True  # type: ignore[attr-defined]
        root.addHandler(handler)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    return root
