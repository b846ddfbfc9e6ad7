import json

import pytest

from commonmeta.errors import UnsupportedVocabulary
from commonmeta.vocabularies import VocabularyStore, load_vocabulary
from commonmeta.vocabularies.ror import display_name, find_by_name, find_organization
from commonmeta.vocabularies.spdx import find_license, license_from_url

def test_load_spdx_licenses():
    """
    Tests that the embedded SPDX license list loads as a JSON object.
    """
    data = load_vocabulary("SPDX.Licenses")
    assert isinstance(data, bytes)
    assert data.lstrip().startswith(b"{")

def test_load_ror_snapshot_as_json():
    data = json.loads(load_vocabulary("ROR.Organizations"))
    assert data["version"] == "v1.71"
    assert data["items"]

def test_unknown_vocabulary():
    """
    Tests that an unknown vocabulary name is rejected.
    """
    with pytest.raises(UnsupportedVocabulary):
        load_vocabulary("nope")

def test_ror_snapshot_lookup():
    org = find_organization("03vek6s52")
    assert org is not None
    assert display_name(org) == "Harvard University"
    assert find_organization("https://ror.org/03vek6s52") is org
    assert find_by_name("harvard university")["id"] == "https://ror.org/03vek6s52"

def test_spdx_lookup_by_id_and_url():
    """
    Tests that licenses resolve by SPDX id (any case) and by Creative Commons URL.
    """
    assert find_license("cc-by-4.0")["licenseId"] == "CC-BY-4.0"
    lid, url = license_from_url("http://creativecommons.org/licenses/by/4.0/")
    assert lid == "CC-BY-4.0"
    assert url == "https://creativecommons.org/licenses/by/4.0/legalcode"

def test_store_fixture_override():
    """
    Tests that a store built from a fixture mapping serves those bytes instead of the packaged files.
    """
    fixture = {"SPDX.Licenses": json.dumps({"licenses": [{"licenseId": "X-Test", "seeAlso": []}]}).encode()}
    store = VocabularyStore(fixture)
    assert store.names() == ["SPDX.Licenses"]
    assert find_license("x-test", store)["licenseId"] == "X-Test"
    assert find_license("CC-BY-4.0", store) is None
    with pytest.raises(UnsupportedVocabulary):
        store.load("ROR.Organizations")
