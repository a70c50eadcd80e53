"""Deadline-bounded execution of blocking desktop calls.

The screen capture, clipboard and input libraries block while they talk to
the display server or spawn helpers such as ``xclip``. Each call runs on a
worker thread and the caller stops waiting once the deadline passes.
"""

import asyncio
import logging
import sys
from typing import Any, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 15.0

T = TypeVar("T")


class ShellCommandError(Exception):
    """A desktop call failed or is not available on this system."""


class ShellTimeoutError(ShellCommandError):
    """A desktop call exceeded its deadline."""


def current_platform() -> str:
    """Return ``linux``, ``darwin``, ``win32`` or the raw ``sys.platform``."""
    if sys.platform.startswith("linux"):
        return "linux"
    return sys.platform


async def run_blocking(
    func: Callable[..., T],
    *args: Any,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    label: Optional[str] = None,
) -> T:
    """Run ``func(*args)`` on a worker thread and wait at most ``timeout`` seconds.

    Cancelling the caller releases it immediately. Threads cannot be killed,
    so an abandoned call finishes in the background and its result is dropped.

    Raises:
        ShellTimeoutError: the deadline passed.
        ShellCommandError: ``func`` raised; the original exception is chained.
    """
    name = label or getattr(func, "__name__", repr(func))
    try:
        return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("Desktop call timed out after %.1fs: %s", timeout, name)
        raise ShellTimeoutError(f"{name} timed out after {timeout:g}s") from None
    except ShellCommandError:
        raise
    except Exception as e:
        raise ShellCommandError(f"{name} failed: {e or type(e).__name__}") from e
