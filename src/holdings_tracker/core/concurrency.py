"""Cooperative cancellation for background refreshes."""

import threading


class CancelToken:
    """
    Cancellation flag shared between a refresh and its workers.

    Workers check :attr:`cancelled` between upstream calls; results produced
    after cancellation are discarded by the caller.

    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def __repr__(self) -> str:
        return f"CancelToken(cancelled={self.cancelled})"
