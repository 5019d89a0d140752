"""Cooperative cancellation for long-running analysis runs."""

import threading

from ..errors import AnalysisCancelled


class CancellationFlag:
    """Shared flag set by a job submitter and read by the pipeline.

    Setting the flag has no immediate effect: the pipeline honors it at its
    next checkpoint.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, where: str = "") -> None:
        """Raise AnalysisCancelled if cancellation was requested."""
        if self._event.is_set():
            raise AnalysisCancelled(
                f"Analysis cancelled ({where})" if where else "Analysis cancelled"
            )
