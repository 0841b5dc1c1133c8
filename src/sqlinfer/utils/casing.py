"""
Convert Postgres identifiers into Go identifiers.

Acronyms win over default capitalization: with {"id": "ID"} the column
author_id becomes AuthorID rather than AuthorId.
"""

import re
from typing import Dict, List, Optional, Set


# Lower-to-upper camel boundary, e.g. the gap in "authorId".
_CAMEL_BOUNDARY = re.compile(r"(?<=[^\W_])(?=[A-Z][a-z])|(?<=[a-z0-9])(?=[A-Z])")
_LEADING_DIGITS = re.compile(r"^\d+")


class Caser:
    """
    Pure identifier transform with a fixed acronym table.

    The acronym table is copied on construction so later changes by the
    caller cannot change the output of an existing Caser.
    """

    def __init__(self, acronyms: Optional[Dict[str, str]] = None):
        """
        Initialize caser.

        Args:
            acronyms: Lowercase word -> preferred rendering, e.g. {"oid": "OID"}.
                      Keys are matched case-insensitively.
        """
        self._acronyms: Dict[str, str] = {
            word.lower(): rendering for word, rendering in (acronyms or {}).items()
        }

    @property
    def acronyms(self) -> Dict[str, str]:
        return dict(self._acronyms)

    def to_upper_ident(self, name: str) -> str:
        """
        Convert a catalog name to an exported Go identifier.

        Returns the empty string when nothing legal is left, so callers can
        choose a fallback name.
        """
        words = split_words(name)
        # Go identifiers cannot start with a digit
        while words and _LEADING_DIGITS.match(words[0]):
            words[0] = _LEADING_DIGITS.sub("", words[0])
            if not words[0]:
                words.pop(0)

        parts = []
        for word in words:
            acronym = self._acronyms.get(word.lower())
            if acronym is not None:
                parts.append(acronym)
            else:
                parts.append(word[0].upper() + word[1:])
        return "".join(parts)

    def __repr__(self):
        return f"Caser(acronyms={self._acronyms!r})"


def split_words(name: str) -> List[str]:
    """Split on non-identifier characters, underscores and camel boundaries."""
    words = []
    for chunk in re.split(r"[\W_]+", name):
        if not chunk:
            continue
        words.extend(w for w in _CAMEL_BOUNDARY.split(chunk) if w)
    return words


def disambiguate(ident: str, taken: Set[str], position: int) -> str:
    """Append position to ident until it no longer clashes with taken."""
    unique = ident
    while unique in taken:
        unique = f"{unique}{position}"
    return unique


def choose_fallback_name(pg_name: str, prefix: str) -> str:
    """Build a name from prefix plus the letters, digits and underscores of pg_name."""
    return prefix + "".join(ch for ch in pg_name if ch.isalnum() or ch == "_")
