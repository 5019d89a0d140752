from dataclasses import dataclass, field, asdict
from typing import List, Dict, Set, Optional, Tuple

STAGE_ANALYZING = "Analyzing text"
STAGE_ENTITIES = "Filtering names & places"
STAGE_COMPLETE = "Complete"


@dataclass
class StemGroup:
    """All surface forms of one lexical root found in a document."""

    stem: str
    occurrence_count: int = 0
    surface_forms: Set[str] = field(default_factory=set)
    contexts: List[str] = field(default_factory=list)
    needs_entity_check: bool = False
    entity_check_contexts: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Candidate:
    """A StemGroup that passed frequency and malformed-word filtering."""

    stem: str
    occurrence_count: int
    surface_forms: Tuple[str, ...]
    contexts: Tuple[str, ...]
    needs_entity_check: bool
    entity_check_contexts: Tuple[str, ...]
    frequency: float

    @classmethod
    def from_group(cls, group: StemGroup, frequency: float) -> "Candidate":
        return cls(
            stem=group.stem,
            occurrence_count=group.occurrence_count,
            surface_forms=tuple(sorted(group.surface_forms)),
            contexts=tuple(group.contexts),
            needs_entity_check=group.needs_entity_check,
            entity_check_contexts=tuple(group.entity_check_contexts),
            frequency=frequency,
        )


@dataclass(frozen=True)
class EntitySpan:
    text: str
    label: str
    score: float = 1.0


@dataclass(frozen=True)
class HardWordResult:
    display_word: str
    frequency_score: float
    contexts: Tuple[str, ...]
    occurrence_count: int
    variant_forms: Tuple[str, ...]

    def to_dict(self) -> Dict:
        return {
            "word": self.display_word,
            "frequency_score": self.frequency_score,
            "contexts": list(self.contexts),
            "count": self.occurrence_count,
            "variants": list(self.variant_forms),
        }


@dataclass(frozen=True)
class SampleWord:
    word: str
    is_entity: bool


@dataclass(frozen=True)
class AnalysisProgress:
    stage: str
    percent: int
    detail: Optional[str] = None
    sample_words: Optional[Tuple[SampleWord, ...]] = None


@dataclass
class AnalysisStats:
    total_candidates: int = 0
    filtered_by_entities: List[str] = field(default_factory=list)
    hard_words_count: int = 0
    sentence_count: int = 0

    def to_dict(self) -> Dict:
        return asdict(self)
