"""Group names: the display-friendly bucket a species is filed under.

A ``GroupName`` is a closed tagged union. The tag (``GroupRank``) records at
which level of the ancestor chain the name was found, the payload is the
common name of that ancestor. Two values are equal only when they carry the
same tag and their text matches case-insensitively, so ``Class("Sea Slugs")``
and ``Subclass("Sea Slugs")`` are distinct.
"""

from __future__ import annotations

import re
from enum import IntEnum
from functools import total_ordering
from typing import Any

_LEADING_TOKENS = re.compile(r"^(?:true|false|typical)\b\s*")
_TRAILING_ALLIES = re.compile(r"\s*and allies$")
_WORD_SPLIT = re.compile(r"\s+")


class GroupRank(IntEnum):
    """Variant tags of ``GroupName`` in declaration order."""

    UNSPECIFIED = 0
    CUSTOM = 1
    PHYLUM = 2
    SUBPHYLUM = 3
    CLASS = 4
    SUBCLASS = 5
    INFRACLASS = 6
    SUPERORDER = 7
    ORDER = 8
    SUBORDER = 9
    INFRAORDER = 10
    PARVORDER = 11
    SUPERFAMILY = 12
    FAMILY = 13
    SUBFAMILY = 14
    GENUS = 15

    @classmethod
    def from_label(cls, label: str) -> GroupRank:
        """Resolve a variant from its (case-insensitive) name, e.g. ``"subclass"``."""
        try:
            return cls[label.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown group rank '{label}'") from None


def normalize_display_name(name: str) -> str:
    """Normalize a common name for display.

    Lower-cases the text, strips leading "true"/"false"/"typical" tokens and
    trailing "and allies" phrases or commas, then title-cases every word.
    Applying it to its own output returns the same string.
    """
    text = name.lower().strip()
    while True:
        stripped = _LEADING_TOKENS.sub("", text)
        stripped = _TRAILING_ALLIES.sub("", stripped).strip().rstrip(",").strip()
        if stripped == text:
            break
        text = stripped

    return " ".join(_title_word(word) for word in _WORD_SPLIT.split(text) if word)


def _title_word(word: str) -> str:
    return "-".join(part[:1].upper() + part[1:] for part in word.split("-"))


@total_ordering
class GroupName:
    """A classification label tagged with the rank it was derived from."""

    __slots__ = ("_name", "_rank")

    def __init__(self, rank: GroupRank, name: str = ""):
        if rank is GroupRank.UNSPECIFIED:
            name = ""
        self._rank = GroupRank(rank)
        self._name = name

    @property
    def rank(self) -> GroupRank:
        return self._rank

    @property
    def name(self) -> str:
        return self._name

    @classmethod
    def unspecified(cls) -> GroupName:
        return cls(GroupRank.UNSPECIFIED)

    @classmethod
    def custom(cls, name: str) -> GroupName:
        return cls(GroupRank.CUSTOM, name)

    @classmethod
    def parse(cls, value: Any) -> GroupName:  # noqa: ANN401
        """Build a GroupName from its configuration form.

        Accepts an existing ``GroupName``, a single-key mapping such as
        ``{"subclass": "Sea Slugs"}`` or the literal string ``"unspecified"``.
        """
        if isinstance(value, GroupName):
            return value
        if isinstance(value, str) and value.strip().lower() == "unspecified":
            return cls.unspecified()
        if isinstance(value, dict) and len(value) == 1:
            ((label, name),) = value.items()
            return cls(GroupRank.from_label(str(label)), str(name))
        raise ValueError(
            f"Invalid group name {value!r}: expected a mapping like {{'class': 'Sea Stars'}}"
        )

    def to_config(self) -> dict[str, str] | str:
        """Inverse of ``parse``."""
        if self._rank is GroupRank.UNSPECIFIED:
            return "unspecified"
        return {self._rank.name.lower(): self._name}

    @property
    def is_unspecified(self) -> bool:
        return self._rank is GroupRank.UNSPECIFIED

    def _key(self) -> tuple[int, str]:
        return (int(self._rank), self._name.lower())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GroupName):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, GroupName):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        if self._rank is GroupRank.UNSPECIFIED:
            return "Unknown"
        return normalize_display_name(self._name)

    def __repr__(self) -> str:
        if self._rank is GroupRank.UNSPECIFIED:
            return "GroupName.Unspecified"
        return f"GroupName.{self._rank.name.title()}({self._name!r})"


UNSPECIFIED = GroupName.unspecified()
