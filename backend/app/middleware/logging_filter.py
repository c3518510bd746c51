from __future__ import annotations

import logging

from app.middleware.request_id import request_id_var


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s request_id=%(request_id)s %(message)s"


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        rid = request_id_var.get()
        record.request_id = rid if rid else "-"
        return True


def configure_logging(level: str = "INFO") -> logging.Logger:
    log = logging.getLogger("mediarelay")
    log.setLevel(level.upper())
    if not any(isinstance(f, RequestIdFilter) for h in log.handlers for f in h.filters):
        handler = logging.StreamHandler()
        handler.addFilter(RequestIdFilter())
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log.addHandler(handler)
        log.propagate = False
    return log
