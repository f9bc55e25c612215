"""
Reader — Term and sentence tokenization for trigger lookup

Turns written input into tokens that can be used as index keys:
- original: the surface form, lowercased, punctuation stripped
- categorized: the learned category of the word, or the word itself

Knowledge documents teach categories:
    {"categories": {"greeting": ["hello", "hi", "hey"]}}

After learning, "hi" and "hello" both categorize to "greeting", so a rule
keyed on "hello" is found for either word.

Stores and lookups must go through the same reader, otherwise keys
normalize differently and retrieval silently fails. Terms and sentences
share one word splitter: a term that splits into several words ("e-mail",
"good morning") stands for its first word.
"""

import re
import threading
from typing import Dict, List, Mapping, NamedTuple, Iterable


CATCHALL_KEY = "*"

_WORD_SPLIT = re.compile(r"[^\w']+", re.UNICODE)
_EDGE_PUNCT = "'\".,;:!?()[]{}<>"


class Token(NamedTuple):
    """A token with its surface and its normalized form."""
    original: str
    categorized: str


class Reader:
    """
    Tokenizer with learned word categories.

    Categories are copy-on-write: learn() publishes a new mapping with a
    single assignment, so concurrent tokenization never sees a half-merged
    table.
    """

    def __init__(self, categories: Mapping[str, Iterable[str]] = None):
        self._categories: Dict[str, str] = {}
        self._lock = threading.Lock()
        if categories:
            self.learn(categories)

    # =========================================================================
    # Learning
    # =========================================================================

    def learn(self, categories: Mapping[str, Iterable[str]]) -> int:
        """
        Merge category definitions. Later definitions of a word win.

        Returns:
            Number of words (re)assigned
        """
        if not categories:
            return 0

        with self._lock:
            merged = dict(self._categories)
            assigned = 0
            for category, words in categories.items():
                category_norm = category.strip().lower()
                if not category_norm:
                    continue
                for word in words:
                    word_norm = _normalize(word)
                    if word_norm and word_norm != CATCHALL_KEY:
                        merged[word_norm] = category_norm
                        assigned += 1
            self._categories = merged
        return assigned

    def category(self, word: str) -> str:
        """Get the category of a word, or the normalized word itself."""
        word_norm = _normalize(word)
        return self._categories.get(word_norm, word_norm)

    # =========================================================================
    # Tokenization
    # =========================================================================

    def tokenize_term(self, term: str) -> Token:
        """
        Tokenize a single term (e.g. a trigger key).

        The catch-all key is passed through untouched. A term spanning
        several words yields the first of them, the same token a sentence
        containing the term produces at that position.

        Examples:
            >>> Reader().tokenize_term("Hello!")
            Token(original='hello', categorized='hello')
            >>> Reader({"greeting": ["hello"]}).tokenize_term("hello")
            Token(original='hello', categorized='greeting')
            >>> Reader().tokenize_term("e-mail")
            Token(original='e', categorized='e')
        """
        stripped = term.strip()
        if stripped == CATCHALL_KEY:
            return Token(CATCHALL_KEY, CATCHALL_KEY)

        original = _normalize(stripped)
        return Token(original, self._categories.get(original, original))

    def tokenize_sentence(self, text: str) -> List[Token]:
        """
        Tokenize free text into an ordered token list.

        Order and duplicates are kept: token position decides rank ties.
        """
        if not text:
            return []

        categories = self._categories
        return [Token(word, categories.get(word, word)) for word in _words(text)]

    def stats(self) -> Dict[str, int]:
        categories = self._categories
        return {
            "words": len(categories),
            "categories": len(set(categories.values())),
        }


def _words(text: str) -> List[str]:
    words = []
    for part in _WORD_SPLIT.split(text.lower()):
        word = part.strip(_EDGE_PUNCT)
        if word:
            words.append(word)
    return words


def _normalize(term: str) -> str:
    words = _words(term)
    return words[0] if words else ""
