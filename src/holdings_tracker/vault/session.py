"""Idle auto-lock and self-clearing clipboard for revealed secrets."""

import logging
import threading
from collections.abc import Callable
from typing import Any, Protocol

from holdings_tracker.config import Settings

logger = logging.getLogger(__name__)

IDLE_TIMEOUT_SECONDS = 300.0
CLIPBOARD_CLEAR_SECONDS = 30.0

TimerFactory = Callable[[float, Callable[[], None]], Any]


def _default_timer(interval: float, function: Callable[[], None]) -> threading.Timer:
    timer = threading.Timer(interval, function)
    timer.daemon = True
    return timer


class IdleMonitor:
    """
    Fires lock callbacks after a period without user activity.

    The UI layer subscribes with :meth:`on_idle_timeout` and clears any
    revealed secret when called; the monitor owns no UI state. The timer runs
    only while at least one subscriber is registered.

    Parameters
    ----------
    timeout : float
        Idle period in seconds
    timer_factory : TimerFactory | None
        Creates startable/cancellable timers. Uses ``threading.Timer`` if None.

    """

    def __init__(self, timeout: float = IDLE_TIMEOUT_SECONDS, timer_factory: TimerFactory | None = None) -> None:
        self.timeout = timeout
        self._timer_factory = timer_factory or _default_timer
        self._callbacks: list[Callable[[], None]] = []
        self._timer: Any | None = None
        self._locked = False
        self._lock = threading.Lock()
        self._generation = 0

    @classmethod
    def from_settings(cls, settings: Settings, timer_factory: TimerFactory | None = None) -> "IdleMonitor":
        """Monitor using the configured ``idle_timeout``."""
        return cls(timeout=settings.idle_timeout, timer_factory=timer_factory)

    @property
    def is_locked(self) -> bool:
        return self._locked

    @property
    def is_running(self) -> bool:
        return self._timer is not None

    def on_idle_timeout(self, callback: Callable[[], None]) -> Callable[[], None]:
        """
        Register a callback for the idle timeout.

        Parameters
        ----------
        callback : Callable[[], None]
            Called with no arguments when the idle period elapses

        Returns
        -------
        Callable[[], None]
            Unsubscribe function; the timer stops after the last unsubscribe

        """
        with self._lock:
            self._callbacks.append(callback)
            if self._timer is None:
                self._restart_locked()

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._callbacks:
                    self._callbacks.remove(callback)
                if not self._callbacks:
                    self._cancel_locked()

        return unsubscribe

    def touch(self) -> None:
        """Record user activity: unlock and restart the idle period."""
        with self._lock:
            self._locked = False
            if self._callbacks:
                self._restart_locked()

    def stop(self) -> None:
        with self._lock:
            self._callbacks.clear()
            self._cancel_locked()

    def _fire(self, generation: int) -> None:
        with self._lock:
            # A timer replaced by touch() or stop() may still fire
            if generation != self._generation:
                return
            self._locked = True
            self._timer = None
            callbacks = list(self._callbacks)

        for callback in callbacks:
            try:
                callback()
            except Exception:
                logger.exception("Idle-timeout callback failed")

    def _restart_locked(self) -> None:
        self._cancel_locked()
        generation = self._generation
        self._timer = self._timer_factory(self.timeout, lambda: self._fire(generation))
        self._timer.start()

    def _cancel_locked(self) -> None:
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None


class ClipboardBackend(Protocol):
    """Host clipboard primitive."""

    def write_text(self, text: str) -> None: ...

    def read_text(self) -> str: ...


class SecureClipboard:
    """
    Copies secrets to the clipboard and wipes them after a delay.

    The clipboard is only cleared if it still holds the copied text, so a
    newer unrelated copy by the user survives. If reading the clipboard fails
    it is cleared anyway.

    """

    def __init__(
        self,
        backend: ClipboardBackend,
        clear_delay: float = CLIPBOARD_CLEAR_SECONDS,
        timer_factory: TimerFactory | None = None,
    ) -> None:
        self.backend = backend
        self.clear_delay = clear_delay
        self._timer_factory = timer_factory or _default_timer
        self._timer: Any | None = None
        self._lock = threading.Lock()
        self._generation = 0

    @classmethod
    def from_settings(
        cls, backend: ClipboardBackend, settings: Settings, timer_factory: TimerFactory | None = None
    ) -> "SecureClipboard":
        """Clipboard using the configured ``clipboard_clear_delay``."""
        return cls(backend, clear_delay=settings.clipboard_clear_delay, timer_factory=timer_factory)

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def copy(self, text: str) -> None:
        """Write ``text`` and schedule a clear, replacing any pending clear."""
        with self._lock:
            self._cancel_locked()
            self.backend.write_text(text)

            generation = self._generation
            self._timer = self._timer_factory(self.clear_delay, lambda: self._clear(text, generation))
            self._timer.start()

    def cancel(self) -> None:
        with self._lock:
            self._cancel_locked()

    def _cancel_locked(self) -> None:
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _clear(self, text: str, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._timer = None

        try:
            current = self.backend.read_text()
        except Exception:
            logger.debug("Clipboard read failed, clearing unconditionally")
            current = text

        if current != text:
            return

        try:
            self.backend.write_text("")
        except Exception:
            logger.warning("Failed to clear clipboard")
