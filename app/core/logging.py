"""
Process-wide logging setup.

Everything goes to stdout; the container runtime captures it (see
gunicorn.conf.py). Modules log through `logging.getLogger(__name__)`.
"""
import logging
import sys

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    root.setLevel(level.upper())
    # Idempotent: uvicorn reloads and repeated job runs must not stack handlers.
    for handler in root.handlers:
        if getattr(handler, "_bridge_handler", False):
            return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_FORMAT))
    handler._bridge_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    # httpx logs every request at INFO; keep that out of normal output.
    logging.getLogger("httpx").setLevel(logging.WARNING)
