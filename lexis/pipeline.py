import logging
import threading
from typing import Any, Dict, List, Optional, Tuple

from .analyzers.base import AnalysisStats, Candidate, HardWordResult
from .analyzers.tokenizer import CandidateExtractor, split_sentences, get_stemmer
from .analyzers.frequency import FrequencyFilter, get_frequency_dictionary
from .analyzers.malformed import MalformedWordFilter, get_segmenter
from .analyzers.entities import EntityFilter, get_entity_model
from .analyzers.entities import is_entity_model_available as _entity_model_available
from .analyzers.scoring import HardWordScorer
from .errors import AnalysisCancelled
from .utils.cancellation import CancellationFlag
from .utils.config import load_config
from .utils.progress import (
    ProgressReporter,
    ProgressSink,
    STAGE_ANALYZING,
    STAGE_ENTITIES,
    STAGE_COMPLETE,
)
from .utils.resources import get_gliner_dir, get_symspell_dict_path

logger = logging.getLogger(__name__)

PERCENT_ANALYZING = 20
PERCENT_ENTITIES = 40
PERCENT_COMPLETE = 100


class HardWordPipeline:
    """
    Lexis hard-word pipeline.

    Stages:
      1. Extract:   split sentences, group tokens by stem (CandidateExtractor)
      2. Frequency: keep stems known to wordfreq and rarer than the threshold
      3. Malformed: drop groups with a fused-word spelling (MalformedWordFilter)
      4. Entities:  GLiNER over proper-noun sentences, drop names (EntityFilter)
      5. Score:     choose display forms, rank rarest first (HardWordScorer)

    Usage:
        p = HardWordPipeline()
        words, stats = p.analyze(text, rarity_threshold=5e-5)

    Shared resources (dictionary, stemmer, segmenter, entity model) default to
    the process-wide instances and can be injected for tests. The pipeline
    never mutates them, so one instance may serve concurrent runs.
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        dictionary=None,
        stemmer=None,
        segmenter=None,
        entity_model=None,
    ):
        self.config = config if config is not None else load_config()
        analysis = self.config["analysis"]
        resource_dir = self.config["resources"]["dir"]

        self.rarity_threshold: float = analysis["rarity_threshold"]
        self.dictionary = dictionary if dictionary is not None else get_frequency_dictionary()
        self.stemmer = stemmer if stemmer is not None else get_stemmer()
        self.segmenter = (
            segmenter
            if segmenter is not None
            else get_segmenter(
                get_symspell_dict_path(resource_dir),
                analysis["segmentation_max_edit_distance"],
            )
        )
        self.entity_model = (
            entity_model
            if entity_model is not None
            else get_entity_model(
                get_gliner_dir(resource_dir),
                threads=self.config["runtime"]["threads"],
                threshold=analysis["entity_threshold"],
            )
        )

        self._extractor = CandidateExtractor(self.stemmer)
        self._malformed = MalformedWordFilter(
            self.dictionary,
            self.segmenter,
            self.stemmer,
            max_edit_distance=analysis["segmentation_max_edit_distance"],
        )
        self._entities = EntityFilter(
            self.entity_model,
            labels=analysis["entity_labels"],
            batch_size=analysis["batch_size"],
            max_sentence_length=analysis["max_entity_sentence_length"],
        )

    def is_entity_model_available(self) -> bool:
        return self.entity_model.is_available()

    def is_segmentation_available(self) -> bool:
        return self.segmenter.is_available()

    def analyze(
        self,
        text: str,
        rarity_threshold: Optional[float] = None,
        progress_sink: Optional[ProgressSink] = None,
        cancellation: Optional[CancellationFlag] = None,
    ) -> Tuple[List[HardWordResult], AnalysisStats]:
        """
        Find hard words in text.

        Returns (results ordered rarest first, run statistics). An empty or
        sentence-less text gives an empty result.

        Raises:
            AnalysisCancelled: the cancellation flag was seen at a checkpoint.
            ResourceUnavailableError: the entity model or segmentation
                dictionary was needed but is missing.
        """
        threshold = self.rarity_threshold if rarity_threshold is None else rarity_threshold
        reporter = ProgressReporter(progress_sink)
        flag = cancellation if cancellation is not None else CancellationFlag()

        try:
            return self._run(text or "", threshold, reporter, flag)
        except AnalysisCancelled:
            logger.info("Analysis cancelled")
            raise

    def _run(
        self,
        text: str,
        threshold: float,
        reporter: ProgressReporter,
        flag: CancellationFlag,
    ) -> Tuple[List[HardWordResult], AnalysisStats]:
        flag.raise_if_cancelled("before sentence splitting")
        sentences = split_sentences(text)
        reporter.emit(STAGE_ANALYZING, PERCENT_ANALYZING, f"{len(sentences)} sentences")
        logger.info(f"Processing {len(sentences)} sentences")

        groups = self._extractor.extract(sentences, flag)

        flag.raise_if_cancelled("before frequency filtering")
        frequency_filter = FrequencyFilter(self.dictionary, threshold)
        candidates: List[Candidate] = [
            Candidate.from_group(group, freq)
            for group, freq in frequency_filter.filter(groups.values())
            if not self._malformed.any_malformed(group.surface_forms)
        ]
        flag.raise_if_cancelled("after frequency filtering")
        logger.info(f"Found {len(candidates)} hard word candidates")

        reporter.emit(
            STAGE_ENTITIES, PERCENT_ENTITIES, f"{len(candidates)} candidates to check"
        )
        index = self._entities.build_index(candidates, reporter, flag)
        kept, filtered_by_entities = EntityFilter.apply(candidates, index)

        flag.raise_if_cancelled("before scoring")
        results = HardWordScorer(self.dictionary, threshold).rank(kept)

        reporter.emit(STAGE_COMPLETE, PERCENT_COMPLETE, f"{len(results)} hard words found")
        logger.info(
            f"Final result: {len(results)} hard words, "
            f"{len(filtered_by_entities)} filtered as names"
        )

        stats = AnalysisStats(
            total_candidates=len(candidates),
            filtered_by_entities=filtered_by_entities,
            hard_words_count=len(results),
            sentence_count=len(sentences),
        )
        return results, stats


_default_pipeline: Optional[HardWordPipeline] = None
_default_lock = threading.Lock()


def get_pipeline() -> HardWordPipeline:
    """Process-wide pipeline built from the default configuration."""
    global _default_pipeline
    with _default_lock:
        if _default_pipeline is None:
            _default_pipeline = HardWordPipeline()
        return _default_pipeline


def analyze(
    text: str,
    rarity_threshold: Optional[float] = None,
    progress_sink: Optional[ProgressSink] = None,
    cancellation: Optional[CancellationFlag] = None,
) -> Tuple[List[HardWordResult], AnalysisStats]:
    """Run the default pipeline; see HardWordPipeline.analyze."""
    return get_pipeline().analyze(text, rarity_threshold, progress_sink, cancellation)


def is_entity_model_available(config: Optional[Dict[str, Any]] = None) -> bool:
    """
    Whether the configured entity model can be used. Loads nothing.

    Without a config, the defaults and LEXIS_RESOURCE_DIR decide the location.
    """
    if config is None:
        config = load_config()
    resource_dir = config["resources"]["dir"]
    return _entity_model_available(get_gliner_dir(resource_dir))
