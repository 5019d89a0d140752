import re
import logging
from typing import Iterable, List, Optional, Tuple

from .base import Candidate, HardWordResult

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


def clean_context(context: str) -> str:
    """Replace non-breaking spaces and collapse runs of whitespace."""
    text = context.replace("&nbsp;", " ").replace("\u00a0", " ")
    return _WHITESPACE_RE.sub(" ", text).strip()


class HardWordScorer:
    """
    Turns surviving candidates into ranked HardWordResults.

    The display word is the shortest surface form found in the frequency
    dictionary (scored with its own frequency). When no form is in the
    dictionary, the shortest form is shown and scored with the stem's
    frequency, or the candidate's filter frequency if the stem is unknown too.
    A result whose display form turns out more common than the rarity
    threshold (a rare stem shown through a common spelling) is dropped.
    Results are ordered rarest first; the sort is stable.
    """

    def __init__(self, dictionary, rarity_threshold: Optional[float] = None):
        self.dictionary = dictionary
        self.rarity_threshold = rarity_threshold

    def choose_display(self, candidate: Candidate) -> Tuple[str, float]:
        forms = sorted(candidate.surface_forms, key=lambda f: (len(f), f))
        for form in forms:
            freq = self.dictionary.frequency(form)
            if freq > 0.0:
                return form, freq

        shortest = forms[0] if forms else candidate.stem
        freq = self.dictionary.frequency(candidate.stem) or candidate.frequency
        return shortest, freq

    def score(self, candidate: Candidate) -> HardWordResult:
        display_word, freq = self.choose_display(candidate)
        variants = tuple(sorted(f for f in candidate.surface_forms if f != display_word))
        return HardWordResult(
            display_word=display_word,
            frequency_score=freq,
            contexts=tuple(clean_context(c) for c in candidate.contexts),
            occurrence_count=candidate.occurrence_count,
            variant_forms=variants,
        )

    def rank(self, candidates: Iterable[Candidate]) -> List[HardWordResult]:
        results: List[HardWordResult] = []
        for candidate in candidates:
            result = self.score(candidate)
            if self.rarity_threshold is not None and result.frequency_score > self.rarity_threshold:
                logger.debug(
                    f"Dropping '{result.display_word}': display frequency "
                    f"{result.frequency_score:g} above threshold"
                )
                continue
            results.append(result)
        results.sort(key=lambda r: r.frequency_score)
        return results
