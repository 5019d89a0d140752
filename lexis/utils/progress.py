import logging
from typing import Callable, Iterable, Optional

from ..analyzers.base import (
    AnalysisProgress,
    SampleWord,
    STAGE_ANALYZING,
    STAGE_ENTITIES,
    STAGE_COMPLETE,
)

logger = logging.getLogger(__name__)

ProgressSink = Callable[[AnalysisProgress], None]


class ProgressReporter:
    """
    Emits AnalysisProgress events for a single run.

    Percent values are clamped so they never go backwards within the run.
    Delivery is fire-and-forget: an exception raised by the sink is logged
    and dropped, never propagated into the pipeline.
    """

    def __init__(self, sink: Optional[ProgressSink] = None):
        self._sink = sink
        self._percent = 0

    @property
    def percent(self) -> int:
        return self._percent

    def emit(
        self,
        stage: str,
        percent: int,
        detail: Optional[str] = None,
        sample_words: Optional[Iterable[SampleWord]] = None,
    ) -> None:
        self._percent = max(self._percent, min(int(percent), 100))
        if self._sink is None:
            return

        samples = tuple(sample_words) if sample_words else None
        event = AnalysisProgress(
            stage=stage,
            percent=self._percent,
            detail=detail,
            sample_words=samples,
        )
        try:
            self._sink(event)
        except Exception as e:
            logger.warning(f"Progress sink failed on '{stage}': {e}")
