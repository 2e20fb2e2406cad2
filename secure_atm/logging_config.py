"""
Structured Logging Configuration Module

Provides JSON-formatted structured logging for all terminal operations.
Credentials never reach the log stream and session ids are truncated.
"""

import logging
import json
from datetime import datetime, timezone
from typing import Optional


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging"""
    
    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "module": record.module if hasattr(record, 'module') else record.name,
            "message": record.getMessage(),
            "account": getattr(record, 'account', None),
            "session_id": getattr(record, 'session_id', None),
            "action": getattr(record, 'action', None),
            "extra": getattr(record, 'extra', None)
        }
        
        # Remove None values
        log_entry = {k: v for k, v in log_entry.items() if v is not None}
        
        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)
            
        return json.dumps(log_entry, default=str)


TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = "INFO", fmt: str = "json",
                  logger_name: str = "secure_atm") -> logging.Logger:
    """
    Setup logging for the terminal.
    
    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        fmt: "json" for structured output, "text" for plain lines
        logger_name: Name of the root terminal logger
        
    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(logger_name)
    
    # Remove existing handlers to avoid duplicates
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    
    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper()))
    logger.propagate = False
    
    return logger


def get_logger(name: str = "secure_atm") -> logging.Logger:
    """Get logger instance"""
    return logging.getLogger(name)


def short_id(session_id: Optional[str]) -> Optional[str]:
    """Truncate a session id for log output"""
    if not session_id:
        return None
    return session_id[:8]


def log_action(logger: logging.Logger, level: str, message: str,
               account: Optional[str] = None, action: Optional[str] = None,
               session_id: Optional[str] = None, extra: Optional[dict] = None):
    """
    Log an action with structured data.
    
    Args:
        logger: Logger instance
        level: Log level (info, warning, error, etc.)
        message: Log message
        account: Account number the action applies to
        action: Action being performed
        session_id: Session id (truncated before it is emitted)
        extra: Additional structured data
    """
    levelno = getattr(logging, level.upper())
    if not logger.isEnabledFor(levelno):
        return
    
    record = logger.makeRecord(
        logger.name, levelno, __name__, 0, message, (), None
    )
    
    if account:
        record.account = account
    if action:
        record.action = action
    if session_id:
        record.session_id = short_id(session_id)
    if extra:
        record.extra = extra
        
    logger.handle(record)
