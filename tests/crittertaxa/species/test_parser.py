"""Tests for species name sanitizing."""

import pytest

from crittertaxa.species.parser import SpeciesNameError, sanitize_species_name


@pytest.mark.parametrize(
    "raw,expected",
    [
        pytest.param("Comaster schlegelii", "Comaster schlegelii", id="plain"),
        pytest.param("Diadema sp.1 - sp.4", "Diadema", id="spaced_sp_range"),
        pytest.param("Phrikoceros sp.1-sp.2", "Phrikoceros", id="tight_sp_range"),
        pytest.param("Phrikoceros sp. 1- sp. 4", "Phrikoceros", id="spaced_indexes"),
        pytest.param("Chromodoris sp.", "Chromodoris", id="single_sp"),
        pytest.param("Halgerda spp.", "Halgerda", id="spp"),
        pytest.param("Eunice cf. australis", "Eunice australis", id="cf_qualifier"),
        pytest.param("Hamodactylus cf. noumeae 1 - 4", "Hamodactylus noumeae", id="number_range"),
        pytest.param("  Chromodoris   annae ", "Chromodoris annae", id="extra_whitespace"),
        pytest.param("Spinosa spinosissima", "Spinosa spinosissima", id="sp_prefix_in_word"),
    ],
)
def test_sanitize_species_name(raw, expected):
    """Should reduce annotated names to the plain scientific name."""
    assert sanitize_species_name(raw) == expected


@pytest.mark.parametrize(
    "raw",
    [
        pytest.param("Chromodoris annae (juvenile)", id="parenthesis"),
        pytest.param("Diadema sp.1 - sp.4 maybe", id="text_after_range"),
        pytest.param("Hamodactylus 1 - 4 noumeae", id="text_after_numbers"),
        pytest.param("", id="empty"),
        pytest.param("   ", id="blank"),
        pytest.param("sp.1", id="range_only"),
    ],
)
def test_rejects_unparseable_names(raw):
    """Should raise SpeciesNameError for names outside the grammar."""
    with pytest.raises(SpeciesNameError):
        sanitize_species_name(raw)


def test_error_is_value_error():
    """Should be catchable as ValueError."""
    with pytest.raises(ValueError):
        sanitize_species_name("???")
