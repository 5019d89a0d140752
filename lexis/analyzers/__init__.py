from .base import (
    StemGroup,
    Candidate,
    EntitySpan,
    HardWordResult,
    SampleWord,
    AnalysisProgress,
    AnalysisStats,
)
from .tokenizer import CandidateExtractor, EnglishStemmer, split_sentences
from .frequency import FrequencyDictionary, StaticFrequencyDictionary, FrequencyFilter
from .malformed import MalformedWordFilter, WordSegmenter
from .entities import EntityFilter, EntityIndex, EntityModel
from .scoring import HardWordScorer

__all__ = [
    "StemGroup",
    "Candidate",
    "EntitySpan",
    "HardWordResult",
    "SampleWord",
    "AnalysisProgress",
    "AnalysisStats",
    "CandidateExtractor",
    "EnglishStemmer",
    "split_sentences",
    "FrequencyDictionary",
    "StaticFrequencyDictionary",
    "FrequencyFilter",
    "MalformedWordFilter",
    "WordSegmenter",
    "EntityFilter",
    "EntityIndex",
    "EntityModel",
    "HardWordScorer",
]
