# stok/infra/logger.py
"""
Logging for stock operations.

This module sets up one file logger per concern (transactions, ledger
movements, history/undo, database and system events) and exposes small
helpers used by the workflows.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional


# Global switch for writing logs
ENABLE_LOGGING = False
# Global switch for console output
ENABLE_OUTPUT = False


def configure_logging(enable_logging: bool = True, enable_output: Optional[bool] = None) -> None:
    """Turns file logging (and optionally console output) on or off."""
    global ENABLE_LOGGING, ENABLE_OUTPUT
    ENABLE_LOGGING = bool(enable_logging)
    if enable_output is not None:
        ENABLE_OUTPUT = bool(enable_output)


def print_system(*args, **kwargs):
    """Print guarded by ENABLE_OUTPUT."""
    if ENABLE_OUTPUT:
        print(*args, **kwargs)


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logger(name: str, log_file: str, level: int = logging.INFO) -> logging.Logger:
    """
    Configures a logger that writes to its own file.

    Args:
        name: Logger name
        log_file: Path of the log file
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False

    while logger.handlers:
        logger.removeHandler(logger.handlers[0])

    # delay=True: the file (and its directory) only appear on the first record
    file_handler = _LazyDirFileHandler(log_file, encoding='utf-8', delay=True)
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    logger.addHandler(file_handler)

    return logger


class _LazyDirFileHandler(logging.FileHandler):
    def _open(self):
        Path(self.baseFilename).parent.mkdir(parents=True, exist_ok=True)
        return super()._open()


# Log directory (inside the package)
BASE_DIR = Path(__file__).parent.parent
LOGS_DIR = BASE_DIR / "logs"

LOG_FILES = {
    "transactions": LOGS_DIR / "transactions.log",
    "ledger": LOGS_DIR / "ledger.log",
    "history": LOGS_DIR / "history.log",
    "database": LOGS_DIR / "database.log",
    "system": LOGS_DIR / "system.log",
}

transaction_logger = setup_logger('stok.transactions', str(LOG_FILES["transactions"]))
ledger_logger = setup_logger('stok.ledger', str(LOG_FILES["ledger"]))
history_logger = setup_logger('stok.history', str(LOG_FILES["history"]))
database_logger = setup_logger('stok.database', str(LOG_FILES["database"]))
system_logger = setup_logger('stok.system', str(LOG_FILES["system"]))


def log_transaction(operation: str, data: Dict[str, Any], result: Optional[Any] = None, error: Optional[str] = None) -> None:
    """
    Logs a complete workflow call.

    Args:
        operation: Workflow name (stock_add, case_register, ...)
        data: Input of the operation
        result: Outcome (optional)
        error: Error message (optional)
    """
    if not ENABLE_LOGGING:
        return
    if error:
        transaction_logger.error(f"TRANSACTION_FAILED: {operation} - {error} - Data: {data}")
    else:
        transaction_logger.info(f"TRANSACTION_SUCCESS: {operation} - Result: {result} - Data: {data}")


def log_ledger(action: str, material_name: str, serial_lot_number: str, quantity: Any = None, **kwargs) -> None:
    """
    Logs a stock movement (add, remove, delete, update).

    Args:
        action: Movement kind
        material_name: Material name
        serial_lot_number: Serial or lot number
        quantity: Quantity moved (optional)
        **kwargs: Extra data
    """
    if not ENABLE_LOGGING:
        return
    log_data = {
        "action": action,
        "material_name": material_name,
        "serial_lot_number": serial_lot_number,
        "quantity": quantity,
        **kwargs
    }
    ledger_logger.info(f"LEDGER_{action.upper()}: {log_data}")


def log_history(action: str, record_id: str, record_type: str, **kwargs) -> None:
    """Logs history appends, removals and undo attempts."""
    if not ENABLE_LOGGING:
        return
    log_data = {"action": action, "id": record_id, "type": record_type, **kwargs}
    history_logger.info(f"HISTORY_{action.upper()}: {log_data}")


def log_database_operation(table: str, operation: str, affected_rows: int = 0, **kwargs) -> None:
    """
    Logs a store operation.

    Args:
        table: Collection or table name
        operation: Operation (GET, SET, CLEAR, ...)
        affected_rows: Number of records written
        **kwargs: Extra data
    """
    if not ENABLE_LOGGING:
        return
    log_data = {
        "table": table,
        "operation": operation,
        "affected_rows": affected_rows,
        **kwargs
    }
    database_logger.info(f"DB_{operation}: {log_data}")


def log_system_event(event: str, details: Dict[str, Any] = None, level: str = "info") -> None:
    """
    Logs a system event.

    Args:
        event: Event name
        details: Extra details (optional)
        level: Level (info, warning, error)
    """
    if not ENABLE_LOGGING:
        return
    log_data = {
        "event": event,
        "details": details or {}
    }
    log_method = getattr(system_logger, level.lower(), system_logger.info)
    log_method(f"SYSTEM_EVENT: {event} - {log_data}")


def log_file_operation(operation: str, file_path: str, rows_processed: int = 0, **kwargs) -> None:
    """
    Logs a spreadsheet import or export.

    Args:
        operation: import or export
        file_path: File path
        rows_processed: Number of rows handled
        **kwargs: Extra data
    """
    if not ENABLE_LOGGING:
        return
    log_data = {
        "operation": operation,
        "file_path": file_path,
        "rows_processed": rows_processed,
        "at": datetime.now().isoformat(timespec="seconds"),
        **kwargs
    }
    system_logger.info(f"FILE_{operation.upper()}: {log_data}")


def get_log_summary(log_type: str = "transactions", lines: int = 100) -> str:
    """
    Returns the last lines of a log file.

    Args:
        log_type: transactions, ledger, history, database or system
        lines: Number of lines to return

    Returns:
        Log content as a string
    """
    log_file = LOG_FILES.get(log_type)
    if not log_file or not log_file.exists():
        return f"Log {log_type} bulunamadı."

    try:
        with open(log_file, 'r', encoding='utf-8') as f:
            all_lines = f.readlines()
            recent_lines = all_lines[-lines:] if len(all_lines) > lines else all_lines
            return ''.join(recent_lines)
    except OSError as e:
        return f"Log {log_type} okunamadı: {str(e)}"
