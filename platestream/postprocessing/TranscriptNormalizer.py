# platestream/postprocessing/TranscriptNormalizer.py
import string
from types import MappingProxyType
from typing import Mapping

_DIGIT_WORDS = (
    "zero", "one", "two", "three", "four",
    "five", "six", "seven", "eight", "nine",
)

_PHONETIC_WORDS = (
    "alpha", "bravo", "charlie", "delta", "echo", "foxtrot", "golf", "hotel",
    "india", "juliet", "kilo", "lima", "mike", "november", "oscar", "papa",
    "quebec", "romeo", "sierra", "tango", "uniform", "victor", "whiskey",
    "xray", "yankee", "zulu",
)

# Spellings the recognizer or the speaker may produce besides the canonical word
_PHONETIC_VARIANTS = {
    "alfa": "A",
    "juliett": "J",
    "x-ray": "X",
}


def _build_word_table() -> Mapping[str, str]:
    table: dict[str, str] = {}
    for digit, word in enumerate(_DIGIT_WORDS):
        table[word] = str(digit)
    for word in _PHONETIC_WORDS:
        table[word] = word[0].upper()
    table.update(_PHONETIC_VARIANTS)
    for letter in string.ascii_lowercase:
        table[letter] = letter.upper()
    return MappingProxyType(table)


WORD_TO_CHAR: Mapping[str, str] = _build_word_table()
"""Spoken token (lowercase) → canonical plate character. Read-only."""

PLATE_GRAMMAR: tuple[str, ...] = (
    tuple(string.ascii_lowercase) + _DIGIT_WORDS + _PHONETIC_WORDS
)
"""Vocabulary a grammar-constrained recognizer should be limited to."""


class TranscriptNormalizer:
    """Maps spoken plate tokens to canonical characters.

    Each whitespace-separated token is looked up case-insensitively in the
    word table: digit words become digits, phonetic-alphabet words and single
    letters become uppercase letters. Tokens not in the table are kept as they
    were spoken, never dropped. The output is the concatenation of all mapped
    tokens, without separators.

    The normalizer holds no state besides the table reference, so one instance
    can be shared freely.

    Args:
        word_table: Lowercase token → character mapping. Defaults to WORD_TO_CHAR.
    """

    def __init__(self, word_table: Mapping[str, str] = WORD_TO_CHAR):
        self.word_table: Mapping[str, str] = word_table

    def normalize(self, text: str) -> str:
        """Normalize a transcript into a plate character string.

        Args:
            text: Free text, e.g. ``"mike echo 4 seven"``.

        Returns:
            Canonical string, e.g. ``"ME47"``. Empty for empty input.
        """
        if not text:
            return ""
        return "".join(self.normalize_token(token) for token in text.split())

    def normalize_token(self, token: str) -> str:
        """Map a single token, passing unknown tokens through unchanged."""
        return self.word_table.get(token.lower(), token)
