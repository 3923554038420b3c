"""Structured logging for the seeder."""
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union


class _TextFormatter(logging.Formatter):
    """Readable single-line output for development runs."""

    def format(self, record: logging.LogRecord) -> str:
        entry = record.msg if isinstance(record.msg, dict) else {'message': record.getMessage()}
        fields = ' '.join(
            f"{key}={value}" for key, value in entry.items()
            if key not in ('time', 'level', 'message')
        )
        line = f"{entry.get('time', '')} {entry.get('level', record.levelname):<5} {entry.get('message', '')}"
        return f"{line} {fields}" if fields else line


class _JsonFormatter(logging.Formatter):
    """One JSON object per line for production runs."""

    def format(self, record: logging.LogRecord) -> str:
        entry = record.msg if isinstance(record.msg, dict) else {'message': record.getMessage()}
        return json.dumps(entry, default=str)


class StructuredLogger:
    """
    Structured logger passed explicitly to pipeline components.

    In production it outputs one JSON line per event:
    {
        "time": "2025-01-13T14:00:00.000Z",
        "level": "INFO",
        "message": "batch_written",
        "worker": 3,
        "table": "stocks-data",
        "items": 25
    }
    Other environments get the same fields as `key=value` text.
    """

    def __init__(self, name: str, level: Union[int, str] = logging.INFO,
                 environment: str = 'development', stream=None):
        """Initialize structured logger."""
        self.logger = logging.getLogger(name)
        self.environment = environment
        self.logger.propagate = False

        # Re-initialising the same name replaces the handler instead of stacking one
        for handler in list(self.logger.handlers):
            if getattr(handler, '_seeder_stream', False):
                self.logger.removeHandler(handler)
                handler.close()

        handler = logging.StreamHandler(stream or sys.stdout)
        handler._seeder_stream = True
        handler.setFormatter(self._formatter())
        self.logger.addHandler(handler)
        self.set_level(level)

    def _formatter(self) -> logging.Formatter:
        if self.environment == 'production':
            return _JsonFormatter()
        return _TextFormatter()

    def _log(self, level: str, message: str, **kwargs: Any) -> None:
        """Log structured message."""
        log_entry: Dict[str, Any] = {
            'time': datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z'),
            'level': level,
            'message': message
        }

        log_entry.update(kwargs)

        if level == 'ERROR':
            self.logger.error(log_entry)
        elif level == 'WARN':
            self.logger.warning(log_entry)
        elif level == 'DEBUG':
            self.logger.debug(log_entry)
        else:
            self.logger.info(log_entry)

    def info(self, message: str, **kwargs: Any) -> None:
        """Log info message."""
        self._log('INFO', message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        """Log error message."""
        self._log('ERROR', message, **kwargs)

    def warn(self, message: str, **kwargs: Any) -> None:
        """Log warning message."""
        self._log('WARN', message, **kwargs)

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log debug message."""
        self._log('DEBUG', message, **kwargs)

    def bind(self, **kwargs: Any) -> 'BoundLogger':
        """Return a bound logger with context."""
        return BoundLogger(self, kwargs)

    def set_level(self, level: Union[int, str]) -> None:
        """Set log level."""
        if isinstance(level, str):
            level = getattr(logging, level.upper(), logging.INFO)
        self.logger.setLevel(level)
        for handler in self.logger.handlers:
            handler.setLevel(level)

    def add_file_handler(self, log_dir: Union[str, Path], filename: str = 'seed.log') -> Path:
        """Mirror log output into LOG_DIR/filename."""
        directory = Path(log_dir).resolve()
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / filename
        handler = logging.FileHandler(path)
        handler._seeder_stream = True
        handler.setLevel(self.logger.level)
        handler.setFormatter(_JsonFormatter())
        self.logger.addHandler(handler)
        return path


class BoundLogger:
    """Logger with bound context variables."""

    def __init__(self, logger: StructuredLogger, context: Dict[str, Any]):
        """Initialize bound logger."""
        self.logger = logger
        self.context = context

    def info(self, message: str, **kwargs: Any) -> None:
        """Log info with context."""
        merged = {**self.context, **kwargs}
        self.logger.info(message, **merged)

    def error(self, message: str, **kwargs: Any) -> None:
        """Log error with context."""
        merged = {**self.context, **kwargs}
        self.logger.error(message, **merged)

    def warn(self, message: str, **kwargs: Any) -> None:
        """Log warning with context."""
        merged = {**self.context, **kwargs}
        self.logger.warn(message, **merged)

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log debug with context."""
        merged = {**self.context, **kwargs}
        self.logger.debug(message, **merged)

    def bind(self, **kwargs: Any) -> 'BoundLogger':
        """Return a logger with additional context."""
        return BoundLogger(self.logger, {**self.context, **kwargs})


def get_logger(name: str, level: Union[int, str] = logging.INFO,
               environment: str = 'development', log_dir: Optional[str] = None) -> StructuredLogger:
    """
    Create the structured logger for a run.

    Args:
        name: Logger name
        level: Log level (int or name)
        environment: 'production' for JSON lines, anything else for text
        log_dir: Optional directory for a seed.log file copy

    Returns:
        StructuredLogger instance
    """
    logger = StructuredLogger(name, level, environment)
    if log_dir:
        logger.add_file_handler(log_dir)
    return logger
