from __future__ import annotations

import json
import logging
import sys
from typing import Any, Callable, Dict, Optional, TextIO

from loguru import logger


class InterceptHandler(logging.Handler):
    """Bridge stdlib logging -> Loguru, preserving level and caller site."""
    def emit(self, record):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1
        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def json_line(record: Dict[str, Any]) -> str:
    """
    Flatten a loguru record to one JSON object:
    {"time": ..., "level": ..., "msg": ..., <extra fields>}.
    """
    out: Dict[str, Any] = {
        "time": record["time"].isoformat(timespec="microseconds"),
        "level": record["level"].name,
        "msg": record["message"],
    }
    out.update((k, v) for k, v in record["extra"].items() if not k.startswith("_"))
    if record["exception"] is not None:
        out["exception"] = repr(record["exception"].value)
    return json.dumps(out, default=str)


def json_sink(stream: TextIO) -> Callable[[Any], None]:
    """
    Sink writing each record as a single line in one write() call. Loguru holds a
    per-sink lock around calls, so concurrent rounds cannot interleave records.
    """
    def _write(message) -> None:
        stream.write(json_line(message.record) + "\n")
        stream.flush()
    return _write


def _file_format(record) -> str:
    # loguru treats the returned string as a template; hand the JSON over via extra
    record["extra"]["_json"] = json_line(record)
    return "{extra[_json]}\n"


def setup_logging(
    stream: TextIO = sys.stdout,
    level: str = "INFO",
    log_file: Optional[str] = None,
) -> None:
    """Configure Loguru with a JSON-lines sink on stream and an optional rotating file."""
    logger.remove()

    # asyncio and friends log through stdlib logging
    logging.basicConfig(handlers=[InterceptHandler()], level=logging.WARNING, force=True)

    logger.add(json_sink(stream), level=level, format="{message}")

    if log_file:
        logger.add(
            log_file,
            rotation="10 MB",
            retention="7 days",
            level=level,
            format=_file_format,
            backtrace=False,
            diagnose=False,
        )
