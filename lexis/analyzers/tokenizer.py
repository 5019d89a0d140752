import re
import logging
import threading
from functools import lru_cache
from typing import Dict, List, Optional, Set, Tuple

from .base import StemGroup
from ..utils.cancellation import CancellationFlag

logger = logging.getLogger(__name__)

MIN_TOKEN_LENGTH = 3
MIN_CONTEXT_LENGTH = 20
MAX_CONTEXT_LENGTH = 500
CANCEL_CHECK_INTERVAL = 100

# A period after one of these does not end the sentence ("Mr. Darcy")
TITLE_ABBREVIATIONS: Set[str] = {
    "Mr", "Mrs", "Ms", "Dr", "Prof", "Rev",
    "Col", "Capt", "Gen", "Lt", "Sgt", "Hon",
}

_TERMINATOR_RE = re.compile(r"[.!?]")
_LAST_WORD_RE = re.compile(r"(\w+)\s*$")

# Unicode words; apostrophes inside a word are kept ("that's", "believesthat's")
_WORD_RE = re.compile(r"\w+(?:['’]\w+)*")


class EnglishStemmer:
    """Snowball (Porter2) English stemmer with a memoized stem()."""

    def __init__(self, cache_size: int = 100_000):
        from nltk.stem.snowball import SnowballStemmer

        self._stemmer = SnowballStemmer("english")
        self.stem = lru_cache(maxsize=cache_size)(self._stemmer.stem)


_default_stemmer: Optional[EnglishStemmer] = None
_default_lock = threading.Lock()


def get_stemmer() -> EnglishStemmer:
    """Process-wide EnglishStemmer, created on first use."""
    global _default_stemmer
    with _default_lock:
        if _default_stemmer is None:
            _default_stemmer = EnglishStemmer()
        return _default_stemmer


def split_sentences(text: str) -> List[Tuple[str, str]]:
    """
    Split text on '.', '!' and '?'.

    Returns (sentence, terminator) pairs in document order. Sentences are
    trimmed and never empty; the terminator is '' for trailing text with no
    final punctuation. A period right after a title abbreviation is not
    treated as a sentence end.
    """
    sentences: List[Tuple[str, str]] = []
    if not text:
        return sentences

    start = 0
    for match in _TERMINATOR_RE.finditer(text):
        pos = match.start()
        if match.group() == ".":
            last = _LAST_WORD_RE.search(text, start, pos)
            if last and last.group(1) in TITLE_ABBREVIATIONS:
                continue
        sentence = text[start:pos].strip()
        if sentence:
            sentences.append((sentence, match.group()))
        start = pos + 1

    tail = text[start:].strip()
    if tail:
        sentences.append((tail, ""))
    return sentences


def tokenize(sentence: str) -> List[str]:
    return _WORD_RE.findall(sentence)


def is_likely_proper_noun(token: str, position: int) -> bool:
    """Capitalized and not the first word of its sentence."""
    return position > 0 and token[:1].isupper()


def is_candidate_token(lower: str) -> bool:
    return len(lower) >= MIN_TOKEN_LENGTH and not any(ch.isnumeric() for ch in lower)


class CandidateExtractor:
    """
    Groups every word of a document under its stem.

    For each sentence, tokens shorter than three characters or containing a
    digit are skipped; the rest are lowercased, stemmed and aggregated into
    StemGroups with occurrence counts, observed spellings and the sentences
    they occur in. A token capitalized anywhere but at the start of its
    sentence marks the group for entity verification and records the
    sentence as an entity-check context.
    """

    def __init__(self, stemmer: Optional[EnglishStemmer] = None):
        self.stemmer = stemmer if stemmer is not None else get_stemmer()

    def extract(
        self,
        sentences: List[Tuple[str, str]],
        cancellation: Optional[CancellationFlag] = None,
    ) -> Dict[str, StemGroup]:
        """
        Build stem -> StemGroup over the given (sentence, terminator) pairs.

        Checks the cancellation flag every CANCEL_CHECK_INTERVAL sentences.
        """
        groups: Dict[str, StemGroup] = {}
        seen_contexts: Dict[str, Set[str]] = {}
        seen_entity_contexts: Dict[str, Set[str]] = {}

        for i, (sentence, terminator) in enumerate(sentences):
            if cancellation is not None and i % CANCEL_CHECK_INTERVAL == 0:
                cancellation.raise_if_cancelled("tokenization")

            context = sentence + terminator
            displayable = MIN_CONTEXT_LENGTH < len(sentence) < MAX_CONTEXT_LENGTH

            for position, token in enumerate(tokenize(sentence)):
                lower = token.lower()
                if not is_candidate_token(lower):
                    continue

                stem = self.stemmer.stem(lower)
                group = groups.get(stem)
                if group is None:
                    group = groups[stem] = StemGroup(stem=stem)
                    seen_contexts[stem] = set()
                    seen_entity_contexts[stem] = set()

                group.occurrence_count += 1
                group.surface_forms.add(lower)

                if displayable and context not in seen_contexts[stem]:
                    seen_contexts[stem].add(context)
                    group.contexts.append(context)

                if is_likely_proper_noun(token, position):
                    group.needs_entity_check = True
                    if sentence not in seen_entity_contexts[stem]:
                        seen_entity_contexts[stem].add(sentence)
                        group.entity_check_contexts.append(sentence)

        logger.info(f"Grouped {len(sentences)} sentences into {len(groups)} stems")
        return groups
