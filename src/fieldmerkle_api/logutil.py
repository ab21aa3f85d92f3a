import logging
import re
from typing import Iterable, Union


class RedactingFilter(logging.Filter):
    """Mask signing-key material and other secrets in log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        msg = str(record.getMessage())
        msg = re.sub(r"(Authorization:?)\s+\S+", r"\1 ***", msg, flags=re.IGNORECASE)
        msg = re.sub(
            r"(sk_b64|secret|password|key)([=:]\s*)\S+",
            r"\1\2***",
            msg,
            flags=re.IGNORECASE,
        )
        record.msg = msg
        record.args = None
        return True


def setup_logging(
    level: Union[int, str] = logging.INFO,
    loggers: Iterable[str] = ("fieldmerkle_api", "uvicorn", "uvicorn.access"),
) -> None:
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logging.basicConfig(level=level)
    f = RedactingFilter()
    # logger filters do not see records from child loggers; handlers do
    for h in logging.getLogger().handlers:
        h.addFilter(f)
    for name in loggers:
        lg = logging.getLogger(name)
        lg.setLevel(level)
        lg.addFilter(f)
