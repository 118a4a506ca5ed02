from __future__ import annotations

import logging
import os
from pathlib import Path


class _NoisyAccessLogFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not record.name.startswith("uvicorn.access"):
            return True
        message = record.getMessage()
        if '"GET /health' in message:
            return False
        return True


def configure_logging(name: str, level: str | None = None) -> logging.Logger:
    log_level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(
            level=getattr(logging, log_level, logging.INFO),
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )
    if os.getenv("SUPPRESS_HEALTH_ACCESS_LOGS", "1").strip().lower() not in {"0", "false", "no", "off"}:
        access_logger = logging.getLogger("uvicorn.access")
        has_filter = any(isinstance(existing, _NoisyAccessLogFilter) for existing in access_logger.filters)
        if not has_filter:
            access_logger.addFilter(_NoisyAccessLogFilter())
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, log_level, logging.INFO))
    return logger


def env_path(name: str, default: str) -> Path:
    return Path(os.getenv(name, default)).expanduser().resolve()
