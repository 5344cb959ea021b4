"""Process-wide logging setup."""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

# The Azure SDK logs every HTTP request at INFO.
QUIET_LOGGERS = ("azure", "azure.core.pipeline.policies.http_logging_policy")


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the root logger."""
    root = logging.getLogger()
    root.setLevel(level.upper())
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
