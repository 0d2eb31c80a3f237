"""Process-level runtime setup shared by the sender and the receiver."""

from __future__ import annotations

import contextlib
import gc
import sys
from typing import TYPE_CHECKING

from pacebench._internal.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = get_logger("runtime")


def install_uvloop() -> None:
    """Install uvloop as the default event loop policy if available.

    Falls back to the default asyncio event loop on Windows or when uvloop
    is not installed.
    """
    if sys.platform == "win32":
        return

    try:
        import uvloop

        uvloop.install()
        logger.debug("uvloop installed as event loop policy")
    except ImportError:
        logger.debug("uvloop not available, using default asyncio event loop")


@contextlib.contextmanager
def automatic_gc_disabled(disable: bool = True) -> Iterator[None]:
    """Turn off the cyclic garbage collector for the duration of the block.

    With automatic collection off, full collections only happen where the
    harness asks for them (between phases, and on GC signals at the
    receiver). The previous collector state is restored on exit.

    Args:
        disable: When False, the block runs with the collector untouched.
    """
    was_enabled = gc.isenabled()
    if disable:
        gc.disable()
        logger.debug("Automatic garbage collection disabled")
    try:
        yield
    finally:
        if disable and was_enabled:
            gc.enable()
