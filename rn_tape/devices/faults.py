"""Routing of unhandled event loop errors to the pending run result."""

import asyncio
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from rn_tape.devices.base import FaultHandler
from rn_tape.errors import UnexpectedFault

log = logging.getLogger(__name__)


@contextmanager
def fault_handler(on_fault: FaultHandler) -> Iterator[None]:
    """Report unhandled errors of the running loop to ``on_fault``.

    The previous exception handler is restored on exit and still sees every
    error.
    """
    loop = asyncio.get_running_loop()
    previous = loop.get_exception_handler()

    def handle(handled_loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
        message = context.get("message") or "Unhandled error in event loop"
        error = context.get("exception")
        fault = UnexpectedFault(f"{message}: {error}" if error else message)
        fault.__cause__ = error
        on_fault(fault)

        if previous is not None:
            previous(handled_loop, context)
        else:
            handled_loop.default_exception_handler(context)

    loop.set_exception_handler(handle)
    log.debug("Fault handler installed")
    try:
        yield
    finally:
        loop.set_exception_handler(previous)
        log.debug("Fault handler removed")
