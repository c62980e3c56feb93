"""Structured logging configuration."""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from pythonjsonlogger import jsonlogger

from reviewscraper.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter adding a UTC timestamp, level, logger and source line."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)

        log_record['timestamp'] = datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z')
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['source'] = f"{record.filename}:{record.lineno}"


def setup_logging(base_dir: str | Path | None = None) -> logging.Logger:
    """Send human-readable logs to stderr and JSON lines to logs/scraper.log.

    stdout is left to the CLI's JSON output.

    Args:
        base_dir: Directory holding logs/; defaults to ``settings.log_dir``,
                  then the working directory.
    """
    base = base_dir or settings.log_dir
    logs_dir = (Path(base) if base else Path.cwd()) / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.log_level.upper()))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    ))
    root_logger.addHandler(console_handler)

    json_handler = logging.FileHandler(logs_dir / "scraper.log")
    json_handler.setFormatter(CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s"))
    root_logger.addHandler(json_handler)

    # Quiet event loop debug noise
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    return root_logger


class RunLoggerAdapter(logging.LoggerAdapter):
    """Attaches per-run fields (such as the listing url) to every record."""

    def process(self, msg, kwargs):
        kwargs['extra'] = {**self.extra, **kwargs.get('extra', {})}
        return msg, kwargs


def get_logger(name: str, **context) -> RunLoggerAdapter:
    """Logger for ``name`` whose records carry ``context`` as extra fields."""
    return RunLoggerAdapter(logging.getLogger(name), context)
