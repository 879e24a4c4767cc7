"""
Structured logging configuration for the balancing report.
"""
import logging
import sys
from datetime import datetime
from pathlib import Path
import json
from typing import Any, Dict


class JSONFormatter(logging.Formatter):
    """Format log records as JSON for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Add extra fields
        if hasattr(record, "extra_data"):
            log_data.update(record.extra_data)

        return json.dumps(log_data, default=str)


def setup_logging(
    level: str = "INFO",
    log_file: str = None,
    json_format: bool = False
) -> logging.Logger:
    """
    Set up logging configuration.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for log output
        json_format: Use JSON formatting for structured logs

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger("coffee_balancing")
    logger.setLevel(getattr(logging, level.upper()))

    # Clear existing handlers
    logger.handlers.clear()

    if json_format:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(funcName)s:%(lineno)d | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str = None) -> logging.Logger:
    """Get a logger instance."""
    if name:
        return logging.getLogger(f"coffee_balancing.{name}")
    return logging.getLogger("coffee_balancing")


# Convenience functions for structured logging
def log_load_start(logger: logging.Logger, generation: int, from_date, to_date):
    """Log the start of a report load."""
    logger.info(
        f"Loading balancing report #{generation} | period={from_date}..{to_date}",
        extra={"extra_data": {
            "event": "load_start",
            "generation": generation,
            "from_date": str(from_date),
            "to_date": str(to_date),
        }}
    )


def log_load_complete(
    logger: logging.Logger,
    generation: int,
    records: int,
    assessments: int,
    transactions: int,
    requests_made: int,
    duration_seconds: float
):
    """Log load completion with counts."""
    logger.info(
        f"Load #{generation} complete | records={records} | assessments={assessments} "
        f"| transactions={transactions} | requests={requests_made} | time={duration_seconds:.2f}s",
        extra={"extra_data": {
            "event": "load_complete",
            "generation": generation,
            "record_count": records,
            "assessment_count": assessments,
            "transaction_count": transactions,
            "request_count": requests_made,
            "duration_seconds": duration_seconds,
        }}
    )


def log_chunk_failed(
    logger: logging.Logger,
    pass_name: str,
    chunk_index: int,
    chunk_size: int,
    error: Exception
):
    """Log a failed chunk request; the rest of its pass is skipped."""
    logger.warning(
        f"Chunk {chunk_index} of pass '{pass_name}' failed ({chunk_size} keys): {error} | skipping rest of pass",
        extra={"extra_data": {
            "event": "chunk_failed",
            "pass": pass_name,
            "chunk_index": chunk_index,
            "chunk_size": chunk_size,
            "error_type": type(error).__name__,
        }}
    )


def log_stale_load_discarded(logger: logging.Logger, generation: int, current: int):
    """Log that an outdated load result was dropped."""
    logger.info(
        f"Discarding result of load #{generation}; load #{current} is newer",
        extra={"extra_data": {
            "event": "stale_load_discarded",
            "generation": generation,
            "current_generation": current,
        }}
    )


def log_export(logger: logging.Logger, report_type: str, path: Path, rows: int):
    """Log a written export file."""
    logger.info(
        f"Exported {report_type} report | rows={rows} | path={path}",
        extra={"extra_data": {
            "event": "export",
            "report_type": report_type,
            "path": str(path),
            "rows": rows,
        }}
    )


def log_error(
    logger: logging.Logger,
    error: Exception,
    context: str = None,
    extra: Dict[str, Any] = None
):
    """Log an error with context."""
    extra_data = {"event": "error", "error_type": type(error).__name__}
    if context:
        extra_data["context"] = context
    if extra:
        extra_data.update(extra)

    logger.error(
        f"Error: {error} | context={context or 'none'}",
        exc_info=True,
        extra={"extra_data": extra_data}
    )
