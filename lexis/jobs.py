"""Per-document analysis jobs with supersession and cancellation."""

import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, Hashable, List, Optional

from .analyzers.base import AnalysisStats, HardWordResult
from .errors import AnalysisCancelled
from .pipeline import HardWordPipeline, get_pipeline
from .utils.cancellation import CancellationFlag
from .utils.progress import ProgressSink

logger = logging.getLogger(__name__)


@dataclass
class BookText:
    """Plain text of a book, as produced by the container-to-text extractor."""

    text: str
    chapter_count: int = 0

    @property
    def word_count(self) -> int:
        return len(self.text.split())


@dataclass
class AnalysisReport:
    document_id: Hashable
    word_count: int
    chapter_count: int
    hard_words: List[HardWordResult] = field(default_factory=list)
    stats: AnalysisStats = field(default_factory=AnalysisStats)

    def to_dict(self) -> Dict:
        return {
            "document_id": self.document_id,
            "word_count": self.word_count,
            "chapter_count": self.chapter_count,
            "hard_words": [w.to_dict() for w in self.hard_words],
            "stats": self.stats.to_dict(),
        }


class AnalysisJobs:
    """
    Registry of running analyses keyed by document id.

    Starting a job for a document that already has one cancels the older
    job's flag, so at most one run per document keeps going.
    """

    def __init__(self):
        self._jobs: Dict[Hashable, CancellationFlag] = {}
        self._lock = threading.Lock()

    def start(self, document_id: Hashable) -> CancellationFlag:
        flag = CancellationFlag()
        with self._lock:
            previous = self._jobs.get(document_id)
            if previous is not None:
                logger.info(f"Superseding running analysis for {document_id}")
                previous.cancel()
            self._jobs[document_id] = flag
        return flag

    def cancel(self, document_id: Hashable) -> bool:
        """Cancel the running job for document_id; False if there is none."""
        with self._lock:
            flag = self._jobs.get(document_id)
        if flag is None:
            return False
        logger.info(f"Cancelling analysis for {document_id}")
        flag.cancel()
        return True

    def finish(self, document_id: Hashable, flag: CancellationFlag) -> None:
        """Forget the job, unless a newer one already replaced it."""
        with self._lock:
            if self._jobs.get(document_id) is flag:
                del self._jobs[document_id]

    def active(self) -> List[Hashable]:
        with self._lock:
            return list(self._jobs)


class AnalysisService:
    """Runs the pipeline for documents through an AnalysisJobs registry."""

    def __init__(
        self,
        pipeline: Optional[HardWordPipeline] = None,
        jobs: Optional[AnalysisJobs] = None,
    ):
        self.pipeline = pipeline if pipeline is not None else get_pipeline()
        self.jobs = jobs if jobs is not None else AnalysisJobs()

    def analyze_document(
        self,
        document_id: Hashable,
        book: BookText,
        rarity_threshold: Optional[float] = None,
        progress_sink: Optional[ProgressSink] = None,
    ) -> AnalysisReport:
        """
        Analyze one document, superseding any earlier run for the same id.

        Raises AnalysisCancelled when this run is cancelled or superseded and
        ResourceUnavailableError when a required model is missing.
        """
        flag = self.jobs.start(document_id)
        try:
            flag.raise_if_cancelled("before analysis")
            hard_words, stats = self.pipeline.analyze(
                book.text, rarity_threshold, progress_sink, flag
            )
        except AnalysisCancelled:
            logger.info(f"Analysis for {document_id} cancelled")
            raise
        finally:
            self.jobs.finish(document_id, flag)

        return AnalysisReport(
            document_id=document_id,
            word_count=book.word_count,
            chapter_count=book.chapter_count,
            hard_words=hard_words,
            stats=stats,
        )

    def cancel(self, document_id: Hashable) -> bool:
        return self.jobs.cancel(document_id)

    def active_jobs(self) -> List[Hashable]:
        return self.jobs.active()
