import pytest

from lexis.analyzers.base import Candidate, EntitySpan
from lexis.analyzers.frequency import StaticFrequencyDictionary
from lexis.errors import ResourceUnavailableError


class FakeStemmer:
    """Identity stemmer with explicit overrides."""

    def __init__(self, stems=None):
        self.stems = stems or {}

    def stem(self, word):
        return self.stems.get(word, word)


class FakeSegmenter:
    def __init__(self, segmentations=None, available=True):
        self.segmentations = segmentations or {}
        self.available = available
        self.calls = []

    def is_available(self):
        return self.available

    def segment(self, word, max_edit_distance=None):
        if not self.available:
            raise ResourceUnavailableError("segmentation dictionary")
        self.calls.append(word)
        return self.segmentations.get(word, word)


class FakeEntityModel:
    """Tags every listed name that occurs verbatim in a sentence."""

    def __init__(self, names=(), available=True, fail_on_batch=None):
        self.names = list(names)
        self.available = available
        self.fail_on_batch = fail_on_batch
        self.batches = []

    def is_available(self):
        return self.available

    def predict(self, sentences, labels):
        self.batches.append(list(sentences))
        if self.fail_on_batch == len(self.batches) - 1:
            raise RuntimeError("inference exploded")
        return [
            [EntitySpan(text=name, label="person") for name in self.names if name in s]
            for s in sentences
        ]


PRIDE_TEXT = (
    "It is a truth universally acknowledged that a single man must be in want of a wife. "
    "Mr. Darcy was obsequious to nobody in the room. "
    "Elizabeth Bennet regarded the felicity of her sister with delight. "
    "The obsequiousness of the clergyman amused Elizabeth Bennet greatly. "
    "They travelled to London in the carriage with great felicity."
)

PRIDE_FREQUENCIES = {
    "the": 5e-2,
    "that": 1e-2,
    "with": 8e-3,
    "great": 1e-3,
    "london": 1e-4,
    "elizabeth": 2e-5,
    "universally": 8e-6,
    "clergyman": 4e-6,
    "travelled": 2e-6,
    "felicity": 1e-6,
    "darcy": 3e-7,
    "bennet": 2e-7,
    "obsequious": 2e-7,
}

PRIDE_STEMS = {"obsequious": "obsequi", "obsequiousness": "obsequi"}

PRIDE_NAMES = ["Elizabeth Bennet", "Darcy", "London"]


def make_candidate(stem, forms=None, frequency=1e-6, flagged=False, entity_contexts=(), contexts=(), count=1):
    return Candidate(
        stem=stem,
        occurrence_count=count,
        surface_forms=tuple(sorted(forms or [stem])),
        contexts=tuple(contexts),
        needs_entity_check=flagged,
        entity_check_contexts=tuple(entity_contexts),
        frequency=frequency,
    )


@pytest.fixture
def pride_text():
    return PRIDE_TEXT


@pytest.fixture
def dictionary():
    return StaticFrequencyDictionary(PRIDE_FREQUENCIES)


@pytest.fixture
def stemmer():
    return FakeStemmer(PRIDE_STEMS)


@pytest.fixture
def entity_model():
    return FakeEntityModel(PRIDE_NAMES)


@pytest.fixture
def make_pipeline(dictionary, stemmer, entity_model, monkeypatch, tmp_path):
    monkeypatch.setenv("LEXIS_RESOURCE_DIR", str(tmp_path / "resources"))

    def _make(**kwargs):
        from lexis.pipeline import HardWordPipeline
        from lexis.utils.config import load_config

        kwargs.setdefault("config", load_config())
        kwargs.setdefault("dictionary", dictionary)
        kwargs.setdefault("stemmer", stemmer)
        kwargs.setdefault("segmenter", FakeSegmenter())
        kwargs.setdefault("entity_model", entity_model)
        return HardWordPipeline(**kwargs)

    return _make
