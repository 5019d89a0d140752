import logging
import threading
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple, Union

from ..errors import ResourceUnavailableError

logger = logging.getLogger(__name__)

MIN_MALFORMED_LENGTH = 10
MIN_SEGMENTABLE_LENGTH = 8
MIN_SEGMENT_LENGTH = 3
MIN_PREFIX_LENGTH = 4
DEFAULT_MAX_EDIT_DISTANCE = 2

# Short words that text extraction commonly glues onto the previous word
COMMON_TRAILING_WORDS = ("that's", "that", "the", "this", "they")

SEGMENTATION_RESOURCE = "segmentation dictionary"


class WordSegmenter:
    """
    symspellpy word segmentation over a frequency-list dictionary.

    The dictionary is loaded once, on first use. A failed load is memoized
    and reported through is_available().
    """

    def __init__(
        self,
        dictionary_path: Union[str, Path],
        max_edit_distance: int = DEFAULT_MAX_EDIT_DISTANCE,
        prefix_length: int = 7,
    ):
        self.dictionary_path = Path(dictionary_path)
        self.max_edit_distance = max_edit_distance
        self.prefix_length = prefix_length
        self._symspell = None
        self._failed = False
        self._lock = threading.Lock()

    def is_available(self) -> bool:
        """True unless loading already failed or the dictionary file is missing."""
        if self._symspell is not None:
            return True
        return not self._failed and self.dictionary_path.is_file()

    def _get_symspell(self):
        with self._lock:
            if self._symspell is not None or self._failed:
                return self._symspell

            if not self.dictionary_path.is_file():
                logger.error(f"Segmentation dictionary not found at {self.dictionary_path}")
                self._failed = True
                return None

            from symspellpy import SymSpell

            symspell = SymSpell(
                max_dictionary_edit_distance=self.max_edit_distance,
                prefix_length=self.prefix_length,
            )
            if not symspell.load_dictionary(
                str(self.dictionary_path), term_index=0, count_index=1, separator=" "
            ):
                logger.error(f"Failed to load segmentation dictionary {self.dictionary_path}")
                self._failed = True
                return None

            logger.info(f"Segmentation dictionary loaded from {self.dictionary_path}")
            self._symspell = symspell
            return symspell

    def segment(self, word: str, max_edit_distance: Optional[int] = None) -> str:
        """Return the best segmentation of word as space-separated parts."""
        symspell = self._get_symspell()
        if symspell is None:
            raise ResourceUnavailableError(SEGMENTATION_RESOURCE)
        distance = self.max_edit_distance if max_edit_distance is None else max_edit_distance
        distance = min(distance, self.max_edit_distance)
        return symspell.word_segmentation(word, max_edit_distance=distance).segmented_string


_segmenters: Dict[Tuple[str, int], WordSegmenter] = {}
_segmenters_lock = threading.Lock()


def get_segmenter(
    dictionary_path: Union[str, Path],
    max_edit_distance: int = DEFAULT_MAX_EDIT_DISTANCE,
) -> WordSegmenter:
    """Process-wide WordSegmenter for a dictionary path and edit distance."""
    key = (str(Path(dictionary_path).expanduser()), max_edit_distance)
    with _segmenters_lock:
        if key not in _segmenters:
            _segmenters[key] = WordSegmenter(key[0], max_edit_distance=max_edit_distance)
        return _segmenters[key]


def _strip_apostrophe_suffix(word: str) -> str:
    for i, ch in enumerate(word):
        if ch in "'’":
            return word[:i]
    return word


class MalformedWordFilter:
    """
    Detects words that are two real words fused by text extraction
    ("believesthat's", "meetshimself").

    Checks, in order:
      1. Words under 10 characters are never malformed.
      2. A word whose apostrophe-stripped form or stem is in the frequency
         dictionary is never malformed ("neighboring", "favorites").
      3. If dictionary-constrained segmentation splits the word into two or
         more parts, each at least 3 characters and each a dictionary word,
         it is malformed.
      4. A word ending in a common short word ("that", "the", ...) whose
         remaining prefix of 4+ characters is a dictionary word is malformed.

    Step 3 needs the segmentation dictionary; when it is missing the check
    raises ResourceUnavailableError.
    """

    def __init__(
        self,
        dictionary,
        segmenter,
        stemmer,
        max_edit_distance: int = DEFAULT_MAX_EDIT_DISTANCE,
    ):
        self.dictionary = dictionary
        self.segmenter = segmenter
        self.stemmer = stemmer
        self.max_edit_distance = max_edit_distance

    def _known(self, word: str) -> bool:
        return self.dictionary.frequency(word) > 0.0

    def is_malformed(self, word: str) -> bool:
        if len(word) < MIN_MALFORMED_LENGTH:
            return False

        check_word = _strip_apostrophe_suffix(word)
        if self._known(check_word) or self._known(self.stemmer.stem(check_word)):
            return False

        if len(check_word) >= MIN_SEGMENTABLE_LENGTH:
            segmented = self.segmenter.segment(check_word, self.max_edit_distance)
            segments = segmented.split()
            if len(segments) >= 2 and all(
                len(s) >= MIN_SEGMENT_LENGTH and self._known(s) for s in segments
            ):
                logger.debug(f"Malformed word '{word}' -> '{segmented}'")
                return True

        for suffix in COMMON_TRAILING_WORDS:
            if word.endswith(suffix) and len(word) > len(suffix) + MIN_PREFIX_LENGTH:
                prefix = word[: -len(suffix)]
                if len(prefix) >= MIN_PREFIX_LENGTH and self._known(prefix):
                    logger.debug(f"Malformed word '{word}' ('{prefix}' + '{suffix}')")
                    return True

        return False

    def any_malformed(self, forms: Iterable[str]) -> bool:
        return any(self.is_malformed(form) for form in forms)
