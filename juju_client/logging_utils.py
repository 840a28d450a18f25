from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: str | int | None = None, log_file: str | None = None) -> logging.Logger:
    """Configure the ``juju_client`` logger hierarchy.

    The level falls back to ``JUJU_LOG_LEVEL`` and then ``INFO``. Calling this
    more than once replaces the handlers installed by the previous call.
    """
    if level is None:
        level = os.getenv("JUJU_LOG_LEVEL", "INFO").strip().upper() or "INFO"

    root = logging.getLogger("juju_client")
    root.setLevel(level)

    for handler in list(root.handlers):
        if getattr(handler, "_juju_client_handler", False):
            root.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        directory = os.path.dirname(log_file)
        if directory:
            os.makedirs(directory, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler._juju_client_handler = True  # type: ignore[attr-defined]
        root.addHandler(handler)

    return root
