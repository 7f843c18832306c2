"""Correlation of new entries with previously recorded ones.

The matching rule favors recall: an existing entry is related when any
keyword of the new title and description occurs as a substring of its
lowercased title or description. No ranking and no result limit.
"""

from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from debuglog.core.keywords import extract_keywords
from debuglog.core.models import LogEntry


@runtime_checkable
class CorrelatorPort(Protocol):
    """Port for finding entries related to a new title and description."""

    def find_related(
        self,
        title: str,
        description: str,
        corpus: Iterable[LogEntry],
        exclude_id: str | None = None,
    ) -> list[str]:
        """Return ids of corpus entries related to the given text."""
        ...

    def find_similar(
        self, title: str, description: str, corpus: Iterable[LogEntry]
    ) -> list[LogEntry]:
        """Return corpus entries related to the given text."""
        ...


class KeywordCorrelator:
    """Keyword-overlap implementation of CorrelatorPort."""

    def _matches(self, keywords: list[str], entry: LogEntry) -> bool:
        title = entry.title.lower()
        description = entry.description.lower()
        return any(kw in title or kw in description for kw in keywords)

    def find_similar(
        self, title: str, description: str, corpus: Iterable[LogEntry]
    ) -> list[LogEntry]:
        keywords = extract_keywords(f"{title} {description}")
        if not keywords:
            return []
        return [entry for entry in corpus if self._matches(keywords, entry)]

    def find_related(
        self,
        title: str,
        description: str,
        corpus: Iterable[LogEntry],
        exclude_id: str | None = None,
    ) -> list[str]:
        ids = (
            entry.id
            for entry in self.find_similar(title, description, corpus)
            if entry.id != exclude_id
        )
        return list(dict.fromkeys(ids))
