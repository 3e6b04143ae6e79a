"""Common contract for language profiles.

Contains:
- Unit: A top-level declaration found by a profile
- LanguageProfile: Base class every language profile implements
- IdentityProfile: Whole-file profile for unrecognised languages
"""

from dataclasses import dataclass
from typing import Optional

from gitbahn.split.models import ChunkCategory


@dataclass(frozen=True)
class Unit:
    """A top-level declaration (or run of statements).

    Lines are 1-based and inclusive. ``lead`` is the first line of the
    decorators, attributes or comments directly attached above ``start``.
    """

    name: str
    category: ChunkCategory
    start: int
    end: int
    lead: int


class LanguageProfile:
    """Finds the preamble and top-level units of a file's lines.

    Subclasses raise ChunkParseError when the content cannot be divided.
    """

    def locate_preamble(self, lines: list[str]) -> Optional[tuple[int, int]]:
        """Return the (start, end) span of the import/header block, if any."""
        return None

    def locate_units(self, lines: list[str], after: int = 0) -> list[Unit]:
        """Return the top-level units that start after line ``after``."""
        return []

    def span_of(self, unit: Unit) -> tuple[int, int]:
        """Return the full line span a unit owns, attached leading lines included."""
        return unit.lead, unit.end


class IdentityProfile(LanguageProfile):
    """Treats the whole file as a single chunk."""

    pass


def is_blank(line: str) -> bool:
    return not line.strip()
