import logging
import threading
from functools import lru_cache
from typing import Dict, Iterable, List, Optional, Tuple

from .base import StemGroup

logger = logging.getLogger(__name__)

DEFAULT_RARITY_THRESHOLD = 5e-5


class FrequencyDictionary:
    """
    English word frequencies from the wordfreq "large" list.

    frequency() returns a proportion in [0, 1]; 0.0 means the word is not in
    the dictionary. Lookups are memoized; the instance is shared read-only
    across runs.
    """

    def __init__(self, lang: str = "en", wordlist: str = "large", cache_size: int = 200_000):
        from wordfreq import word_frequency

        self.lang = lang
        self.wordlist = wordlist
        self._word_frequency = word_frequency
        self.frequency = lru_cache(maxsize=cache_size)(self._lookup)

    def _lookup(self, word: str) -> float:
        if not word:
            return 0.0
        return float(self._word_frequency(word, self.lang, wordlist=self.wordlist))


class StaticFrequencyDictionary:
    """Frequency dictionary backed by an in-memory mapping."""

    def __init__(self, frequencies: Dict[str, float]):
        self._frequencies = {k.lower(): float(v) for k, v in frequencies.items()}

    def frequency(self, word: str) -> float:
        return self._frequencies.get(word.lower(), 0.0)


_default_dictionary: Optional[FrequencyDictionary] = None
_default_lock = threading.Lock()


def get_frequency_dictionary() -> FrequencyDictionary:
    """Process-wide FrequencyDictionary, created on first use."""
    global _default_dictionary
    with _default_lock:
        if _default_dictionary is None:
            _default_dictionary = FrequencyDictionary()
            logger.info("wordfreq dictionary loaded (en, large)")
        return _default_dictionary


class FrequencyFilter:
    """
    Keeps stem groups whose dictionary frequency is known and rare.

    The representative frequency is that of the stem; when the stem itself
    is not a dictionary word, the highest frequency among the surface forms
    is used instead. Groups with frequency 0 (unknown words) never pass.
    """

    def __init__(self, dictionary, rarity_threshold: float = DEFAULT_RARITY_THRESHOLD):
        if rarity_threshold <= 0:
            raise ValueError(f"rarity_threshold must be > 0, got {rarity_threshold}")
        self.dictionary = dictionary
        self.rarity_threshold = rarity_threshold

    def group_frequency(self, group: StemGroup) -> float:
        freq = self.dictionary.frequency(group.stem)
        if freq == 0.0:
            for form in group.surface_forms:
                freq = max(freq, self.dictionary.frequency(form))
        return freq

    def is_rare(self, frequency: float) -> bool:
        return 0.0 < frequency <= self.rarity_threshold

    def filter(self, groups: Iterable[StemGroup]) -> List[Tuple[StemGroup, float]]:
        """Return (group, frequency) pairs for every group that is rare enough."""
        kept: List[Tuple[StemGroup, float]] = []
        total = 0
        for group in groups:
            total += 1
            freq = self.group_frequency(group)
            if self.is_rare(freq):
                kept.append((group, freq))

        logger.info(
            f"{len(kept)}/{total} stem groups at or below frequency {self.rarity_threshold:g}"
        )
        return kept
