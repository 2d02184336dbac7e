"""Log formatters."""

import logging
import threading

from mqtt_conduit.logging.context import get_log_context


class ThreadAwareFormatter(logging.Formatter):
    """Log formatter that includes thread information and log context.

    Format: [timestamp] [level] [thread_name:thread_id] [logger.function:line] message {k=v ...}

    Paho invokes callbacks on its network thread, so the thread column tells
    caller-side records apart from callback-side ones.
    """

    def __init__(self) -> None:
        super().__init__(
            fmt="[%(asctime)s] [%(levelname)-8s] [%(thread_name)s:%(thread_id)s] "
            "[%(name)s.%(funcName)s:%(lineno)d] %(message)s%(context)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        thread = threading.current_thread()
        setattr(record, "thread_name", thread.name)
        setattr(record, "thread_id", thread.ident or 0)

        context = get_log_context()
        if context:
            pairs = " ".join(f"{key}={value}" for key, value in sorted(context.items()))
            setattr(record, "context", f" {{{pairs}}}")
        else:
            setattr(record, "context", "")

        return super().format(record)
