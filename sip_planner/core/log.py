import logging
from typing import Any, MutableMapping, Optional

from sip_planner.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(level=(level or settings.LOG_LEVEL).upper(), format=LOG_FORMAT)


class ContextLogger(logging.LoggerAdapter):
    """
    Logger adapter carrying per-request context (request id, operation, ...).

    Components receive one of these explicitly instead of reaching for a
    module-level logger, so every line they emit is tagged with the request
    it belongs to.
    """

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        context = " ".join(f"{k}={v}" for k, v in (self.extra or {}).items() if v is not None)
        if context:
            return f"[{context}] {msg}", kwargs
        return msg, kwargs

    def bind(self, **extra: Any) -> "ContextLogger":
        merged = dict(self.extra or {})
        merged.update(extra)
        return ContextLogger(self.logger, merged)


def get_context_logger(name: str, **extra: Any) -> ContextLogger:
    return ContextLogger(logging.getLogger(name), extra)
