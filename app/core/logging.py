import logging
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional
from pythonjsonlogger import jsonlogger

# Correlation ID of the request being handled, empty outside a request
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

LEVELS_BY_ENVIRONMENT = {
    "development": logging.DEBUG,
    "testing": logging.WARNING,
}


@contextmanager
def bind_request_id(request_id: str) -> Iterator[str]:
    token = request_id_var.set(request_id)
    try:
        yield request_id
    finally:
        request_id_var.reset(token)


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    def __init__(self, *args, service: Optional[str] = None, environment: Optional[str] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.service = service
        self.environment = environment

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)

        req_id = request_id_var.get()
        if req_id and "request_id" not in log_record:
            log_record["request_id"] = req_id

        if not log_record.get("timestamp"):
            log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = (log_record.get("level") or record.levelname).upper()

        if self.service:
            log_record.setdefault("service", self.service)
        if self.environment:
            log_record.setdefault("environment", self.environment)


def level_for(environment: str) -> int:
    return LEVELS_BY_ENVIRONMENT.get(environment, logging.INFO)


def setup_logging(environment: Optional[str] = None, service: Optional[str] = None, level: Optional[int] = None):
    """
    Route the root logger through a single JSON handler.
    Safe to call repeatedly: an existing JSON handler is reconfigured, not duplicated.
    """
    root = logging.getLogger()
    formatter = CustomJsonFormatter(
        "%(timestamp) %(level) %(name) %(message)",
        service=service,
        environment=environment,
    )
    handler = next((h for h in root.handlers if isinstance(h.formatter, CustomJsonFormatter)), None)
    if handler is None:
        handler = logging.StreamHandler()
        root.addHandler(handler)
    handler.setFormatter(formatter)
    root.setLevel(level if level is not None else level_for(environment or ""))

    # Library chatter stays at warning level
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
