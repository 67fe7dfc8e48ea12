"""Cooperative cancellation token.

A CancelToken is set at most once. Callbacks registered with on_cancel()
run exactly once, either when the token is cancelled or immediately if it
already was. Cancelling only requests termination; the invocation still
settles through its normal exit path.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

__all__ = ["CancelToken"]

logger = logging.getLogger(__name__)


class CancelToken:
    """Idempotent cancellation flag with callbacks.

    Example:
        token = CancelToken()
        outcome_task = asyncio.create_task(invoke("7z", ["t", "a.7z"], cancel_token=token))
        ...
        token.cancel()  # SIGTERM is sent once, however often this is called
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> bool:
        """Set the flag and run callbacks.

        Returns:
            True on the first call, False on every later call
        """
        if self._cancelled:
            return False
        self._cancelled = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.warning(f"Cancel callback failed: {e}")
        return True

    def on_cancel(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register a callback.

        Returns:
            A function removing the callback again (no-op once it ran)
        """
        if self._cancelled:
            callback()
            return lambda: None

        self._callbacks.append(callback)

        def remove() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return remove

    def __call__(self) -> None:
        """Zero-argument cancellation thunk."""
        self.cancel()

    def __repr__(self) -> str:
        return f"CancelToken(cancelled={self._cancelled})"
