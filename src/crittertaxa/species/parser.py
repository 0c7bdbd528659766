"""Sanitize species names typed into dive logs.

Logged names often carry annotations iNaturalist cannot resolve: unnamed
species ranges ("Diadema sp.1 - sp.4"), numbered morphs ("noumeae 1 - 4") and
the "cf." qualifier ("Eunice cf. australis"). ``sanitize_species_name`` keeps
the words before such a suffix and drops the qualifiers.
"""

import logging
import re

logger = logging.getLogger(__name__)

# "sp." / "spp." with an optional index, optionally followed by "- sp.N"
_SP_RANGE = re.compile(r"spp?\.\s*\d*(?:\s*-\s*)?(?:spp?\.\s*\d*)?")
_NUMBER_RANGE = re.compile(r"\s*\d+\s*-\s*\d+\s*")
# A word, then either the "cf." stop word or plain whitespace
_WORD = re.compile(r"\s*([^\W_]+)(?:\s*cf\.\s*|\s*)")


class SpeciesNameError(ValueError):
    """The name does not look like a (possibly annotated) species name."""


def sanitize_species_name(name: str) -> str:
    """Reduce an annotated species name to the plain scientific name.

    Examples:
        >>> sanitize_species_name("Diadema sp.1 - sp.4")
        'Diadema'
        >>> sanitize_species_name("Eunice cf. australis")
        'Eunice australis'

    Raises:
        SpeciesNameError: If the name contains anything but words followed by
            an optional species or number range
    """
    words: list[str] = []
    position = 0
    end = len(name)

    while position < end:
        suffix = _SP_RANGE.match(name, position) or _NUMBER_RANGE.match(name, position)
        if suffix:
            if suffix.end() != end:
                raise SpeciesNameError(
                    f"Unexpected text after {suffix.group().strip()!r} in {name!r}"
                )
            break

        word = _WORD.match(name, position)
        if not word:
            raise SpeciesNameError(f"Cannot parse species name {name!r} at offset {position}")
        words.append(word.group(1))
        position = word.end()

    sanitized = " ".join(words)
    if not sanitized:
        raise SpeciesNameError(f"No species name found in {name!r}")
    if sanitized != name:
        logger.debug("Sanitized species name %r to %r", name, sanitized)
    return sanitized
