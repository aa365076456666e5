"""
Event listeners for the motapi SDK.

This module contains the MotEventListener base class and concrete implementations
for observing the lifecycle of MOT History API calls.

Available Listeners:
    - MotEventListener: Base class for all event listeners.
    - LoggingListener: Writes every notification to a logger.

Example:
    >>> from motapi import MotHistoryClient, MotEventListener
    >>> class TokenWatcher(MotEventListener):
    ...     def on_token_refreshed(self, expires_at):
    ...         print(f"New token valid until {expires_at}")
    >>> client = MotHistoryClient(listeners=[TokenWatcher()])
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Any, override

logger = logging.getLogger(__name__)


class MotEventListener:
    """
    Base class for observing SDK lifecycle events.

    Listeners are fire-and-forget observers: they can log, notify or collect
    metrics, but they cannot change the outcome of a call. Exceptions raised
    by a listener are logged and swallowed.

    All methods have default empty implementations, so subclasses only need to
    override the methods they care about.
    """

    def on_token_refreshed(self, expires_at: datetime) -> None:
        """Called after a new access token was obtained."""
        pass

    def on_token_error(self, cause: Exception) -> None:
        """Called when the token exchange failed, with the underlying failure."""
        pass

    def on_admission_wait(self, waited: float) -> None:
        """Called when a call has to wait for the rate limiter to admit it."""
        pass

    def on_api_error(self, status: int, message: str) -> None:
        """Called when the API returned a non-success status code."""
        pass

    def on_network_error(self, cause: Exception) -> None:
        """Called when no response was received from the API."""
        pass

    def on_request_success(self, endpoint: str, method: str) -> None:
        """Called after a call completed successfully."""
        pass

    def on_request_error(self, endpoint: str, method: str, error: Exception) -> None:
        """Called after a call failed, before the failure is classified."""
        pass


class LoggingListener(MotEventListener):
    """
    Listener that writes every notification to a logger.

    This is the default listener of `MotHistoryClient` when no listeners are
    given. Pass `listeners=[]` to disable it.

    Args:
        logger_name: Name of the logger to write to.
    """

    def __init__(self, logger_name: str = "motapi.events"):
        self._logger = logging.getLogger(logger_name)

    @override
    def on_token_refreshed(self, expires_at: datetime) -> None:
        self._logger.info(f"Token refreshed | expires_at={expires_at.isoformat()}")

    @override
    def on_token_error(self, cause: Exception) -> None:
        self._logger.error(f"Token error | {cause}")

    @override
    def on_admission_wait(self, waited: float) -> None:
        self._logger.debug(f"Waiting for rate limiter | waited={waited:.2f}s")

    @override
    def on_api_error(self, status: int, message: str) -> None:
        self._logger.error(f"API error | status={status} | {message}")

    @override
    def on_network_error(self, cause: Exception) -> None:
        self._logger.error(f"Network error | {cause}")

    @override
    def on_request_success(self, endpoint: str, method: str) -> None:
        self._logger.info(f"{method:<4} {endpoint} | OK")

    @override
    def on_request_error(self, endpoint: str, method: str, error: Exception) -> None:
        self._logger.warning(f"{method:<4} {endpoint} | FAILED | {error}")


def notify_listeners(
    listeners: Sequence[MotEventListener],
    event: str,
    **kwargs: Any,
) -> None:
    """
    Notifies all registered listeners about an event.

    Exceptions raised by listeners are logged but do not interrupt execution.

    Args:
        listeners: Listeners to notify.
        event: The event method name (e.g., 'on_token_refreshed').
        **kwargs: Keyword arguments to pass to the listener method.
    """
    for listener in listeners:
        try:
            method = getattr(listener, event, None)
            if method and callable(method):
                method(**kwargs)
        except Exception as e:
            listener_name = listener.__class__.__name__
            logger.warning(f"Event listener `{listener_name}.{event}()` raised an exception: {e}")
