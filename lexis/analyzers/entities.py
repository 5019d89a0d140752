import logging
import threading
import time
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple, Union

from .base import Candidate, EntitySpan, SampleWord, STAGE_ENTITIES
from ..errors import ResourceUnavailableError
from ..utils import resources
from ..utils.cancellation import CancellationFlag

logger = logging.getLogger(__name__)

ENTITY_LABELS: List[str] = ["person", "location", "organization", "country", "city"]
DEFAULT_BATCH_SIZE = 32
MAX_SENTENCE_LENGTH = 512
DEFAULT_ENTITY_THRESHOLD = 0.5

ENTITY_MODEL_RESOURCE = "entity model"

SAMPLE_ENTITY_COUNT = 4
SAMPLE_RARE_COUNT = 4
RARE_SAMPLE_POOL = 20

# Progress window for batched inference
PERCENT_MODEL_LOADING = 42
PERCENT_BATCHES_START = 45
PERCENT_BATCHES_SPAN = 35
PERCENT_END = 80


def _default_thread_count() -> int:
    import psutil

    return psutil.cpu_count(logical=False) or psutil.cpu_count() or 1


class EntityModel:
    """
    Handle to a GLiNER named-entity model stored on disk.

    The model is loaded on the first predict() call with the thread count
    fixed at construction. A failed load is memoized: the handle then reports
    itself unavailable for the rest of the process.
    """

    def __init__(
        self,
        model_dir: Union[str, Path],
        threads: Optional[int] = None,
        threshold: float = DEFAULT_ENTITY_THRESHOLD,
    ):
        self.model_dir = Path(model_dir)
        self.threads = threads
        self.threshold = threshold
        self._model = None
        self._failed = False
        self._lock = threading.Lock()

    def is_available(self) -> bool:
        """Availability check only: never loads the model."""
        if self._model is not None:
            return True
        if self._failed:
            return False
        return resources.has_gliner_artifacts(self.model_dir)

    def _load(self):
        from gliner import GLiNER

        threads = self.threads or _default_thread_count()
        weights = resources.find_gliner_weights(self.model_dir)
        use_onnx = weights is not None and weights.suffix == ".onnx"

        kwargs = {
            "local_files_only": True,
            "load_tokenizer": True,
        }
        if use_onnx:
            import onnxruntime

            session_options = onnxruntime.SessionOptions()
            session_options.intra_op_num_threads = threads
            kwargs.update(
                load_onnx_model=True,
                onnx_model_file=weights.name,
                session_options=session_options,
            )
        else:
            import torch

            torch.set_num_threads(threads)

        model = GLiNER.from_pretrained(str(self.model_dir), **kwargs)
        logger.info(
            f"GLiNER model loaded from {self.model_dir} "
            f"({'onnx' if use_onnx else 'torch'}, {threads} threads)"
        )
        return model

    def _get_model(self):
        with self._lock:
            if self._model is not None or self._failed:
                return self._model

            if not resources.has_gliner_artifacts(self.model_dir):
                logger.error(f"GLiNER model not found at {self.model_dir}")
                self._failed = True
                return None

            try:
                self._model = self._load()
            except Exception as e:
                logger.error(f"Failed to load GLiNER model: {e}")
                self._failed = True
            return self._model

    def predict(
        self, sentences: Sequence[str], labels: Sequence[str]
    ) -> List[List[EntitySpan]]:
        """Run inference on one batch; one span list per input sentence."""
        model = self._get_model()
        if model is None:
            raise ResourceUnavailableError(ENTITY_MODEL_RESOURCE)

        raw = model.batch_predict_entities(
            list(sentences), list(labels), threshold=self.threshold
        )
        return [
            [
                EntitySpan(
                    text=ent["text"],
                    label=ent.get("label", ""),
                    score=float(ent.get("score", 1.0)),
                )
                for ent in sentence_entities
            ]
            for sentence_entities in raw
        ]


_models: Dict[Tuple[str, Optional[int], float], EntityModel] = {}
_models_lock = threading.Lock()


def get_entity_model(
    model_dir: Union[str, Path],
    threads: Optional[int] = None,
    threshold: float = DEFAULT_ENTITY_THRESHOLD,
) -> EntityModel:
    """Process-wide EntityModel handle for model_dir (created, not loaded)."""
    model_dir = str(Path(model_dir).expanduser())
    key = (model_dir, threads, threshold)
    with _models_lock:
        if key not in _models:
            _models[key] = EntityModel(model_dir, threads=threads, threshold=threshold)
        return _models[key]


def is_entity_model_available(model_dir: Union[str, Path]) -> bool:
    """Availability check with no side effects."""
    model_dir = str(Path(model_dir).expanduser())
    with _models_lock:
        handles = [h for (d, _, _), h in _models.items() if d == model_dir]
    if handles:
        return any(h.is_available() for h in handles)
    return EntityModel(model_dir).is_available()


class EntityIndex:
    """Lowercase entity spans and their individual words, for one run."""

    def __init__(self):
        self._entries: Set[str] = set()

    def add_span(self, text: str) -> List[str]:
        """Add a span and its words; return the entries that were new."""
        added: List[str] = []
        span = text.strip().lower()
        if not span:
            return added
        for entry in [span] + span.split():
            if entry not in self._entries:
                self._entries.add(entry)
                added.append(entry)
        return added

    def __contains__(self, word: str) -> bool:
        return word in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)


def _preview_form(candidate: Candidate) -> str:
    return min(candidate.surface_forms, key=lambda f: (len(f), f))


class EntityFilter:
    """
    Removes proper nouns from candidates with batched NER.

    Only the entity-check sentences of candidates flagged as possible proper
    nouns are sent to the model, deduplicated and capped in length. Batches
    run sequentially with a cancellation check before each one. A batch that
    raises contributes no entities; a missing model while verification is
    needed raises ResourceUnavailableError.
    """

    def __init__(
        self,
        model,
        labels: Optional[Sequence[str]] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        max_sentence_length: int = MAX_SENTENCE_LENGTH,
    ):
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self.model = model
        self.labels = list(labels or ENTITY_LABELS)
        self.batch_size = batch_size
        self.max_sentence_length = max_sentence_length

    def collect_sentences(self, candidates: Iterable[Candidate]) -> List[str]:
        """Unique entity-check sentences of flagged candidates, first-seen order."""
        seen: Set[str] = set()
        sentences: List[str] = []
        for candidate in candidates:
            if not candidate.needs_entity_check:
                continue
            for sentence in candidate.entity_check_contexts:
                sentence = sentence.strip()
                if not sentence or len(sentence) >= self.max_sentence_length:
                    continue
                if sentence not in seen:
                    seen.add(sentence)
                    sentences.append(sentence)
        return sentences

    def build_index(
        self,
        candidates: List[Candidate],
        reporter,
        cancellation: CancellationFlag,
    ) -> EntityIndex:
        index = EntityIndex()
        flagged = [c for c in candidates if c.needs_entity_check]

        if not flagged:
            logger.info("No proper noun candidates need entity verification")
            reporter.emit(STAGE_ENTITIES, PERCENT_END, "No proper noun candidates")
            return index

        if not self.model.is_available():
            logger.error("Entity model required but not available")
            raise ResourceUnavailableError(ENTITY_MODEL_RESOURCE)

        candidate_words = sorted({form for c in flagged for form in c.surface_forms})
        reporter.emit(
            STAGE_ENTITIES,
            PERCENT_MODEL_LOADING,
            f"Loading NER model, {len(candidate_words)} words to check",
            [SampleWord(word=w, is_entity=False) for w in candidate_words],
        )

        sentences = self.collect_sentences(flagged)
        total = len(sentences)
        if total == 0:
            reporter.emit(STAGE_ENTITIES, PERCENT_END, "No sentences to check")
            return index

        rare_pool = [
            _preview_form(c)
            for c in sorted(candidates, key=lambda c: c.frequency)[:RARE_SAMPLE_POOL]
        ]
        batch_count = (total + self.batch_size - 1) // self.batch_size
        logger.info(f"Running NER on {total} sentences in {batch_count} batches")

        processed = 0
        sample_index = 0
        total_infer = 0.0
        for batch_idx in range(batch_count):
            cancellation.raise_if_cancelled("entity batch")

            batch = sentences[batch_idx * self.batch_size : (batch_idx + 1) * self.batch_size]
            reporter.emit(
                STAGE_ENTITIES,
                PERCENT_BATCHES_START + processed * PERCENT_BATCHES_SPAN // total,
                f"Processing batch {batch_idx + 1}/{batch_count}...",
            )

            started = time.perf_counter()
            try:
                batch_spans = self.model.predict(batch, self.labels)
            except ResourceUnavailableError:
                raise
            except Exception as e:
                logger.error(f"NER inference failed for batch {batch_idx + 1}: {e}")
                batch_spans = []
            elapsed = time.perf_counter() - started
            total_infer += elapsed
            if batch_idx == 0:
                logger.debug(
                    f"First NER batch: {elapsed * 1000:.0f} ms for {len(batch)} sentences"
                )

            recent: List[str] = []
            for spans in batch_spans:
                for span in spans:
                    recent.extend(index.add_span(span.text))

            processed += len(batch)

            samples = [SampleWord(word=w, is_entity=True) for w in recent[:SAMPLE_ENTITY_COUNT]]
            if rare_pool:
                for i in range(SAMPLE_RARE_COUNT):
                    word = rare_pool[(sample_index + i) % len(rare_pool)]
                    if word not in index and all(s.word != word for s in samples):
                        samples.append(SampleWord(word=word, is_entity=False))
                sample_index = (sample_index + 2) % len(rare_pool)

            reporter.emit(
                STAGE_ENTITIES,
                min(PERCENT_BATCHES_START + processed * PERCENT_BATCHES_SPAN // total, PERCENT_END),
                f"{processed}/{total} sentences, {len(index)} names found",
                samples,
            )

        logger.info(
            f"NER found {len(index)} entity strings in {total_infer:.2f}s "
            f"({total_infer * 1000 / total:.2f} ms/sentence)"
        )
        return index

    @staticmethod
    def apply(
        candidates: Iterable[Candidate], index: EntityIndex
    ) -> Tuple[List[Candidate], List[str]]:
        """Split candidates into kept ones and the strings that matched an entity."""
        kept: List[Candidate] = []
        filtered: List[str] = []
        for candidate in candidates:
            match = None
            if candidate.stem in index:
                match = candidate.stem
            else:
                match = next((f for f in candidate.surface_forms if f in index), None)
            if match is None:
                kept.append(candidate)
            else:
                filtered.append(match)
        return kept, filtered
