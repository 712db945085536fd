import logging
import sys
from typing import Any

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def setup_logging(level: str = "warning") -> None:
    """Configures the root logger. Calling it again only changes the level."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, stream=sys.stdout)
    logging.getLogger().setLevel(level.upper())


class FieldsAdapter(logging.LoggerAdapter):
    """Logger carrying structured key/value fields, appended to each message.

    Fields accumulate: `with_fields` returns a new adapter and leaves the
    receiver untouched, so a request logger can be narrowed per step.
    """

    def __init__(self, logger: logging.Logger, fields: dict[str, Any] | None = None):
        super().__init__(logger, dict(fields or {}))

    def with_fields(self, **fields: Any) -> "FieldsAdapter":
        return FieldsAdapter(self.logger, {**self.extra, **fields})

    def process(self, msg, kwargs):
        if self.extra:
            pairs = " ".join(f"{k}={v!r}" for k, v in self.extra.items())
            msg = f"{msg} {pairs.replace('%', '%%')}"
        return msg, kwargs


def get_logger(name: str, **fields: Any) -> FieldsAdapter:
    return FieldsAdapter(logging.getLogger(name), fields)
