import json

import pytest

from food_system_survey.config.config_manager import DEFAULT_OVERRIDES_FILE
from food_system_survey.services.override_table import OverrideTable, OverrideTableError


def write_overrides(tmp_path, entries, version=1):
    path = tmp_path / "overrides.json"
    path.write_text(json.dumps({"version": version, "entries": entries}), encoding="utf-8")
    return path


def test_bundled_overrides_load():
    table = OverrideTable.load(DEFAULT_OVERRIDES_FILE)

    assert table.version == 1
    assert len(table) == 51
    assert table.get("12860 Crossroads Prkwy. South, Los Angeles, CA") == (34.028243, -118.024345)


def test_lookup_is_exact(tmp_path):
    path = write_overrides(tmp_path, [
        {"address": "840 Echo Park Ave, Los Angeles, CA", "coordinates": [34.073635, -118.2603]},
    ])
    table = OverrideTable.load(path)

    assert "840 Echo Park Ave, Los Angeles, CA" in table
    assert table.get("840 echo park ave, los angeles, ca") is None


def test_duplicate_address_rejected(tmp_path):
    entry = {"address": "840 Echo Park Ave, Los Angeles, CA", "coordinates": [34.073635, -118.2603]}
    path = write_overrides(tmp_path, [entry, entry])

    with pytest.raises(OverrideTableError, match="Duplicate"):
        OverrideTable.load(path)


@pytest.mark.parametrize("coordinates", [None, [34.0], ["34", "-118"], [134.0, -118.0], [34.0, -218.0]])
def test_bad_coordinates_rejected(tmp_path, coordinates):
    path = write_overrides(tmp_path, [{"address": "1 Main St, Los Angeles, CA", "coordinates": coordinates}])

    with pytest.raises(OverrideTableError):
        OverrideTable.load(path)


def test_bad_file_rejected(tmp_path):
    with pytest.raises(OverrideTableError):
        OverrideTable.load(tmp_path / "missing.json")

    path = tmp_path / "overrides.json"
    path.write_text('{"entries": "nope"}', encoding="utf-8")
    with pytest.raises(OverrideTableError):
        OverrideTable.load(path)

    path = write_overrides(tmp_path, [], version="1")
    with pytest.raises(OverrideTableError, match="version"):
        OverrideTable.load(path)


def test_construct_from_pairs():
    table = OverrideTable([("1 Main St, Los Angeles, CA", (34, -118))])
    assert table.get("1 Main St, Los Angeles, CA") == (34.0, -118.0)
