"""Thread-local logging context.

Fields set with ``log_context`` are rendered by ``ThreadAwareFormatter`` on
every record emitted from the same thread inside the ``with`` block.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

_local = threading.local()


def _current() -> dict[str, Any]:
    context = getattr(_local, "context", None)
    if context is None:
        context = {}
        _local.context = context
    return context


@contextmanager
def log_context(**kwargs: Any) -> Iterator[None]:
    """Context manager for adding temporary logging context.

    Args:
        **kwargs: Context key-value pairs to add

    Example:
        with log_context(operation="publish", topic="sensors/temp"):
            logger.debug("Issuing publish")
    """
    context = _current()
    saved = dict(context)
    context.update(kwargs)
    try:
        yield
    finally:
        context.clear()
        context.update(saved)


def get_log_context() -> dict[str, Any]:
    """Get a copy of the current thread's logging context."""
    return dict(_current())
