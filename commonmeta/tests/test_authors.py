from commonmeta.utils.authors import is_personal_name, parse_name

def test_two_token_name_is_personal():
    """
    Tests that a plain given/family name is classified as personal and split on the last space.
    """
    assert is_personal_name("John Doe") is True
    assert parse_name("John Doe") == ("John", "Doe", "")

def test_organization_keyword():
    """
    Tests that a name containing an organization keyword is organizational.
    """
    assert is_personal_name("Harvard University") is False
    assert parse_name("Harvard University") == ("", "", "Harvard University")

def test_single_token_with_keyword():
    """
    Tests that a one-word name with an embedded keyword is organizational.
    """
    assert is_personal_name("LiberateScience") is False
    assert parse_name("LiberateScience") == ("", "", "LiberateScience")

def test_honorific_suffix_is_dropped():
    """
    Tests that a trailing honorific marks the name as personal and is removed when parsing.
    """
    assert is_personal_name("Jane Smith, MD") is True
    assert parse_name("Jane Smith, MD") == ("Jane", "Smith", "")

def test_single_given_name_is_not_personal():
    """
    Tests that a lone token without a comma is organizational.
    """
    assert is_personal_name("John") is False
    assert parse_name("John") == ("", "", "John")

def test_semicolon_means_organization():
    assert is_personal_name("Doe; Smith") is False

def test_inverted_name():
    """
    Tests that "Family, Given" names are split on the comma.
    """
    assert is_personal_name("Doe, John") is True
    assert parse_name("Doe, John") == ("John", "Doe", "")

def test_parse_name_matches_classifier():
    """
    Tests that parse_name returns the organization form exactly when the name is not personal.
    """
    for name in ["John Doe", "Harvard University", "LiberateScience", "Jane Smith, MD", "John",
                 "Max Planck Institute", "Ada King Lovelace", "Doe, John", "CERN"]:
        given, family, org = parse_name(name)
        if is_personal_name(name):
            assert org == "" and family
        else:
            assert (given, family, org) == ("", "", name)

def test_several_suffixes_after_honorific():
    """
    Tests that only the token after the first comma decides, and everything from it onwards is dropped.
    """
    assert is_personal_name("Jane Smith, MD, PhD") is True
    assert parse_name("Jane Smith, MD, PhD") == ("Jane", "Smith", "")
    assert parse_name("Jane Smith, PhD, Berlin") == ("Jane", "Smith", "")
