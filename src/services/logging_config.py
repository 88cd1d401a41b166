"""
Logging Configuration for the Resource Allocation Engine.

Provides structured logging with:
- JSON formatting for production
- Human-readable formatting for development
- Caller and operation correlation through context variables
- Per-operation outcome and timing records
"""

import logging
import json
import sys
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional, Dict, Callable, Iterator
from functools import wraps
from pathlib import Path
from contextvars import ContextVar

from domain.errors import AllocationError
from domain.value_objects import CallerContext

# Context variables for operation tracking
caller_id_var: ContextVar[Optional[str]] = ContextVar('caller_id', default=None)
operation_var: ContextVar[Optional[str]] = ContextVar('operation', default=None)


def _context_fields() -> Dict[str, str]:
    fields = {}
    caller_id = caller_id_var.get()
    if caller_id:
        fields["caller_id"] = caller_id
    operation = operation_var.get()
    if operation:
        fields["operation"] = operation
    return fields


class JsonFormatter(logging.Formatter):
    """
    JSON log formatter for structured logging.

    Outputs logs as JSON objects for easy parsing by log aggregators.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Add context variables
        log_data.update(_context_fields())

        # Add extra fields from the record
        if hasattr(record, 'extra_data'):
            log_data.update(record.extra_data)

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class ReadableFormatter(logging.Formatter):
    """
    Human-readable log formatter for development.
    """

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
        'RESET': '\033[0m',
    }

    def format(self, record: logging.LogRecord) -> str:
        """Format log record for human readability."""
        color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
        reset = self.COLORS['RESET']

        timestamp = datetime.now().strftime('%H:%M:%S.%f')[:-3]
        level = f"{color}{record.levelname:8s}{reset}"

        message = f"{timestamp} {level} [{record.name}] {record.getMessage()}"

        context = _context_fields()
        if context:
            message += " (" + ", ".join(f"{k}={v}" for k, v in context.items()) + ")"

        # Add extra fields
        if hasattr(record, 'extra_data') and record.extra_data:
            extras = ' | '.join(f"{k}={v}" for k, v in record.extra_data.items())
            message += f" | {extras}"

        return message


class ContextLogger(logging.LoggerAdapter):
    """
    Logger adapter that includes context in all log messages.
    """

    def process(self, msg: str, kwargs: Dict) -> tuple:
        """Add context to log message."""
        extra = kwargs.get('extra', {})

        # Merge with any existing extra data
        if 'extra_data' not in extra:
            extra['extra_data'] = {}
        extra['extra_data'].update(self.extra)
        extra['extra_data'].update(_context_fields())

        kwargs['extra'] = extra
        return msg, kwargs


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Optional[Path] = None
) -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: If True, output JSON formatted logs
        log_file: Optional file path for log output
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers
    root_logger.handlers.clear()

    # Create formatter
    if json_output:
        formatter = JsonFormatter()
    else:
        formatter = ReadableFormatter()

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # File handler if specified
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(JsonFormatter())  # Always JSON for files
        root_logger.addHandler(file_handler)

    # Set levels for noisy libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)


def get_logger(name: str, **extra) -> ContextLogger:
    """
    Get a context-aware logger.

    Args:
        name: Logger name (typically __name__)
        **extra: Additional context to include in all logs

    Returns:
        ContextLogger instance
    """
    base_logger = logging.getLogger(name)
    return ContextLogger(base_logger, extra)


@contextmanager
def bind_caller(caller: CallerContext, operation: Optional[str] = None) -> Iterator[None]:
    """
    Tag every log record emitted inside the block with the acting user.

    Args:
        caller: Identity performing the operation
        operation: Optional operation name
    """
    caller_token = caller_id_var.set(str(caller.user_id) if caller.user_id else "system")
    operation_token = operation_var.set(operation) if operation else None
    try:
        yield
    finally:
        if operation_token is not None:
            operation_var.reset(operation_token)
        caller_id_var.reset(caller_token)


def log_operation(name: Optional[str] = None) -> Callable:
    """
    Decorator for Allocation Service operations.

    Binds the caller (the first positional argument after `self`) for the
    duration of the call and logs the outcome: INFO on success, WARNING for
    a rule violation, ERROR for anything unexpected.

    Args:
        name: Optional name override for the log entry

    Returns:
        Decorator function
    """
    def decorator(func: Callable) -> Callable:
        op_name = name or func.__name__

        @wraps(func)
        def wrapper(self, caller: CallerContext, *args, **kwargs):
            logger = get_logger("allocation.operations")
            start = time.time()
            with bind_caller(caller, op_name):
                try:
                    result = func(self, caller, *args, **kwargs)
                except AllocationError as e:
                    logger.warning(
                        f"{op_name} rejected: {e.message}",
                        extra={'extra_data': {
                            'code': e.code.value,
                            'kind': e.kind.value,
                        }}
                    )
                    raise
                except Exception as e:
                    duration_ms = int((time.time() - start) * 1000)
                    logger.error(
                        f"{op_name} failed",
                        extra={'extra_data': {
                            'duration_ms': duration_ms,
                            'error': type(e).__name__,
                        }},
                        exc_info=True,
                    )
                    raise
                duration_ms = int((time.time() - start) * 1000)
                logger.info(
                    f"{op_name} completed",
                    extra={'extra_data': {'duration_ms': duration_ms}}
                )
                return result

        return wrapper

    return decorator
