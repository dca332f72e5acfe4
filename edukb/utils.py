"""
Utility functions for edukb

Provides logging setup, label helpers, and the exception hierarchy
"""

import logging
from pathlib import Path
from typing import Optional


# ═══════════════════════════════════════════════════════════════════
# LOGGING
# ═══════════════════════════════════════════════════════════════════

def setup_logging(log_level: str = "INFO", log_file: Optional[str | Path] = None) -> None:
    """Configure logging for edukb"""
    level = getattr(logging, log_level.upper())

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    """Get logger instance for module"""
    return logging.getLogger(name)


# ═══════════════════════════════════════════════════════════════════
# LABELS
# ═══════════════════════════════════════════════════════════════════

def is_blank(text: Optional[str]) -> bool:
    """True for None, empty, or whitespace-only text"""
    return text is None or not text.strip()


def looks_like_entity_id(text: str, prefix: str) -> bool:
    """True when *text* is already an entity id such as ``P37`` or ``Q2``"""
    return len(text) > 1 and text[0] == prefix and text[1:].isdigit()


# ═══════════════════════════════════════════════════════════════════
# EXCEPTIONS
# ═══════════════════════════════════════════════════════════════════

class EduKBError(Exception):
    """Base exception for edukb"""
    pass


class MalformedValueError(EduKBError, ValueError):
    """Raw cell text cannot be encoded as the declared datatype"""
    pass


class UnknownPropertyError(EduKBError, LookupError):
    """Property name does not resolve to a property in the store"""

    def __init__(self, name: str):
        super().__init__(f"Unknown property: {name!r}")
        self.name = name


class RemoteStoreError(EduKBError):
    """The knowledge base rejected a request"""

    def __init__(self, message: str, code: str = ""):
        super().__init__(message)
        self.code = code


class RemoteUnavailableError(RemoteStoreError):
    """Transport failure or unusable response from the knowledge base"""
    pass


class AuthExpiredError(RemoteStoreError):
    """Login failed or the session/CSRF token is no longer valid"""
    pass


class RowsExhaustedError(EduKBError):
    """The row source ended before the requested number of rows"""

    def __init__(self, summary, requested: int):
        super().__init__(
            f"Row source exhausted after {summary.rows_read} of {requested} requested rows"
        )
        self.summary = summary
        self.requested = requested
