"""Keyword extraction used for tagging and correlation."""

import re

MAX_KEYWORDS = 10
MIN_KEYWORD_LENGTH = 3

STOPWORDS = frozenset(
    {
        "the", "a", "an",
        "and", "or", "but",
        "in", "on", "at", "to", "for", "of", "with", "by",
    }
)  # fmt: skip

_NON_WORD = re.compile(r"[^\w\s]", re.ASCII)


def extract_keywords(text: str) -> list[str]:
    """Extract up to MAX_KEYWORDS significant tokens from free text.

    Tokens keep their order of first occurrence. There is no frequency
    ranking and no deduplication.

    Args:
        text: Arbitrary text, e.g. a title or "title description".

    Returns:
        Lowercased tokens at least MIN_KEYWORD_LENGTH long that are not
        stopwords, in the order they appear.
    """
    words = _NON_WORD.sub(" ", text.lower()).split()
    return [
        word
        for word in words
        if len(word) >= MIN_KEYWORD_LENGTH and word not in STOPWORDS
    ][:MAX_KEYWORDS]


def generate_tags(category: str, title: str) -> tuple[str, ...]:
    """Build the tag set for an entry: its category followed by title keywords."""
    return tuple(dict.fromkeys([str(category), *extract_keywords(title)]))
