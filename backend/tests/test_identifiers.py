import pytest

from social_signals.linkedin.utils.identifiers import (
    ProfileIdentifiers,
    extract_profile_identifiers,
    normalize_urn,
)


@pytest.mark.parametrize("value, expected", [
    ("https://www.linkedin.com/in/jdoe/", ProfileIdentifiers(secondary="jdoe", public="jdoe")),
    ("https://www.linkedin.com/in/jdoe?trk=abc", ProfileIdentifiers(secondary="jdoe", public="jdoe")),
    ("https://www.linkedin.com/in/ACoAAB12345", ProfileIdentifiers(primary="ACoAAB12345")),
    ("ACoAAB12345", ProfileIdentifiers(primary="ACoAAB12345")),
    ("urn:li:person:ACoAAB12345", ProfileIdentifiers(primary="ACoAAB12345")),
    ("https://www.linkedin.com/company/acme", ProfileIdentifiers()),
    ("", ProfileIdentifiers()),
    (None, ProfileIdentifiers()),
])
def test_extract_profile_identifiers(value, expected):
    assert extract_profile_identifiers(value) == expected


def test_extraction_never_raises_on_garbage():
    for value in ["   ", "not a url", "/in/", 12345, "urn:li:person:"]:
        assert isinstance(extract_profile_identifiers(value), ProfileIdentifiers)


def test_extraction_is_idempotent_on_its_output():
    first = extract_profile_identifiers("https://www.linkedin.com/in/ACoAAB12345/")
    assert extract_profile_identifiers(first.primary) == first


def test_values_skips_duplicates_and_empties():
    assert ProfileIdentifiers(secondary="jdoe", public="jdoe").values() == ["jdoe"]
    assert ProfileIdentifiers().is_empty()


def test_normalize_urn():
    assert normalize_urn("urn:li:person:ACoA1") == "ACoA1"
    assert normalize_urn("  jdoe ") == "jdoe"
    assert normalize_urn(None) is None
