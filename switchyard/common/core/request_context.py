"""
RequestContext management.
Use ContextVar to share the Request ID across async execution.
"""

import uuid
from contextvars import ContextVar, Token
from typing import Optional


# Context variable for Request ID (UUID) of the pipeline execution in progress.
_request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id() -> Optional[str]:
    """Get the current Request ID."""
    return _request_id_var.get()


def new_request_id() -> str:
    """Return a fresh Request ID without binding it."""
    return str(uuid.uuid4())


def set_request_id(request_id: str) -> Token:
    """
    Bind a Request ID to the current context.

    Returns:
        Token that restores the previous value via reset_request_id()
    """
    return _request_id_var.set(request_id)


def reset_request_id(token: Token) -> None:
    _request_id_var.reset(token)


def clear_request_id() -> None:
    """Clear the Request ID context."""
    _request_id_var.set(None)
