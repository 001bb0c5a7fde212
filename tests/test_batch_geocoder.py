import json
from unittest.mock import Mock

import pytest

from conftest import FakeNominatimClient, california, make_record

from food_system_survey.config import ConfigManager
from food_system_survey.models import survey_columns as cols
from food_system_survey.models.survey_data import GeocodedOrganization
from food_system_survey.services.batch_geocoder import (
    BatchGeocodingError,
    GeocodingBatchProcessor,
    build_output_document,
)
from food_system_survey.services.nominatim_client import GeocoderAPIError, NominatimClient
from food_system_survey.services.override_table import OverrideTable


HEADERS = [
    "Organization Name", "Sector", "Primary Supervisorial District (based on headquarters address)",
    "Main Org Street Address (headquarters)", "Main Org Zip Code",
    "Primary SPA (service planning area)(Based on headquarters address)", "Email Address",
]

FOOD_BANK_QUERY = "100 Food Bank Way, Los Angeles, CA, 90001"


def survey_rows():
    return [
        HEADERS,
        ["Food Bank", "Nonprofit/CBO", "1st District", "100 Food Bank Way, Suite 2", 90001,
         "SPA 6 - South", "hello@foodbank.example"],
        ["Pantry Network", "Foundation", "2nd District", "200 Pantry Rd", None, "", ""],
        ["Lost Garden", None, None, "300 Nowhere Ln", "90002", "", ""],
    ]


class Sleeps:
    def __init__(self):
        self.calls = []

    def __call__(self, seconds):
        self.calls.append(seconds)


def make_processor(client, sleep=None):
    return GeocodingBatchProcessor(ConfigManager(), client=client, overrides=OverrideTable(),
                                   sleep=sleep or Sleeps())


def test_run_geocodes_skips_and_fails(geocode_env, write_workbook):
    write_workbook(survey_rows())
    client = FakeNominatimClient({FOOD_BANK_QUERY: california(34.01, -118.27)})
    sleep = Sleeps()

    report = make_processor(client, sleep).run()

    document = json.loads((geocode_env / 'data' / 'organizations.json').read_text(encoding='utf-8'))
    assert document == report['output_document']
    assert document['metadata']['totalOrganizations'] == 3
    assert document['metadata']['geocodedOrganizations'] == 1
    assert document['metadata']['failedGeocode'] == 2
    assert document['metadata']['successRate'] == "33.3"
    assert document['metadata']['districts'] == ["1st District"]

    organization = document['organizations'][0]
    assert organization['id'] == "org-0"
    assert organization['zipCode'] == "90001"
    assert organization['coordinates'] == [34.01, -118.27]
    assert organization['primarySPA'] == "SPA 6"
    assert organization['contact'] == {'email': "hello@foodbank.example", 'name': ""}

    # two pauses between records plus one before the fallback lookup for Lost Garden
    assert sleep.calls == [2.0, 2.0, 2.0]
    assert client.queries == [
        FOOD_BANK_QUERY,
        "300 Nowhere Ln, Los Angeles, CA, 90002",
        "300 Nowhere Ln, Los Angeles, CA",
    ]

    cache = json.loads((geocode_env / 'data' / 'geocode-cache.json').read_text(encoding='utf-8'))
    assert cache == {
        FOOD_BANK_QUERY.lower(): [34.01, -118.27],
        "300 nowhere ln, los angeles, ca, 90002": None,
    }

    summary = report['processing_summary']
    assert summary['geocoded'] == 1
    assert summary['failed'] == 2
    assert summary['skipped_missing_address'] == 1
    assert report['cache_statistics']['api_lookups'] == 2
    assert report['cache_statistics']['new_cache_entries'] == 2
    assert [f['organization_name'] for f in report['failures']] == ["Pantry Network", "Lost Garden"]


def test_second_run_uses_cache_only(geocode_env, write_workbook):
    write_workbook(survey_rows())
    make_processor(FakeNominatimClient({FOOD_BANK_QUERY: california(34.01, -118.27)})).run()

    client = FakeNominatimClient()
    report = make_processor(client).run()

    assert client.queries == []
    assert report['cache_statistics']['cache_hits'] == 2
    assert report['cache_statistics']['api_lookups'] == 0
    assert report['output_document']['metadata']['geocodedOrganizations'] == 1


def test_service_error_does_not_stop_the_run(geocode_env, write_workbook):
    write_workbook(survey_rows())
    client = FakeNominatimClient(error=GeocoderAPIError("HTTP error! status: 503"))

    processor = make_processor(client)
    report = processor.run()

    assert report['processing_summary']['service_errors'] == 2
    assert report['output_document']['organizations'] == []
    assert report['error_analysis']['total_errors'] == 2
    assert processor.get_processing_statistics()['errors'] == 2


def test_unwritable_cache_still_writes_output(geocode_env, write_workbook, monkeypatch):
    write_workbook(survey_rows())
    cache_dir = geocode_env / 'cache-is-a-directory'
    cache_dir.mkdir()
    monkeypatch.setenv('GEOCODE_CACHE_FILE', str(cache_dir))

    report = make_processor(FakeNominatimClient({FOOD_BANK_QUERY: california(34.01, -118.27)})).run()

    assert report['cache_statistics']['cache_saved'] is False
    assert (geocode_env / 'data' / 'organizations.json').exists()


def test_missing_name_column_aborts(geocode_env, write_workbook):
    write_workbook([["Org", "Main Org Zip Code"], ["Food Bank", 90001]])

    with pytest.raises(BatchGeocodingError, match="Organization_Name"):
        make_processor(FakeNominatimClient()).run()


def test_missing_survey_file_aborts(geocode_env):
    with pytest.raises(BatchGeocodingError):
        make_processor(FakeNominatimClient()).run(survey_file=str(geocode_env / 'absent.xlsx'))


def test_geocode_record_uses_override(geocode_env):
    overrides = OverrideTable([("1 Civic Center, Los Angeles, CA", (34.05, -118.24))])
    processor = GeocodingBatchProcessor(ConfigManager(), client=FakeNominatimClient(),
                                        overrides=overrides, sleep=Sleeps())
    record = make_record("County Office", **{cols.STREET_ADDRESS: "1 Civic Center", cols.ZIP_CODE: "90012"})

    organization = processor.geocode_record(4, record)

    assert organization.id == "org-4"
    assert organization.sector == "Unknown"
    assert organization.coordinates == (34.05, -118.24)
    assert processor.stats['override_hits'] == 1


def test_build_output_document_with_no_records():
    document = build_output_document([], 0)
    assert document['organizations'] == []
    assert document['metadata']['successRate'] == "0.0"


def test_build_output_document_collects_unique_districts_and_sectors():
    organizations = [
        GeocodedOrganization(id=f"org-{i}", name=name, sector=sector, address="", zip_code="",
                             coordinates=(34.0, -118.0), primary_district=district)
        for i, (name, sector, district) in enumerate([
            ("A", "Foundation", "1st District"),
            ("B", "Foundation", "2nd District"),
            ("C", "Nonprofit/CBO", "1st District"),
        ])
    ]
    metadata = build_output_document(organizations, 4)['metadata']

    assert metadata['districts'] == ["1st District", "2nd District"]
    assert metadata['sectors'] == ["Foundation", "Nonprofit/CBO"]
    assert metadata['successRate'] == "75.0"


def test_geocode_record_reads_served_districts_under_either_spelling(geocode_env):
    overrides = OverrideTable([("1 Civic Center, Los Angeles, CA", (34.05, -118.24))])
    processor = GeocodingBatchProcessor(ConfigManager(), client=FakeNominatimClient(),
                                        overrides=overrides, sleep=Sleeps())
    address = {cols.STREET_ADDRESS: "1 Civic Center", cols.ZIP_CODE: "90012"}
    legacy = cols.ALIASES[cols.SERVED_DISTRICTS][0]

    current = processor.geocode_record(0, make_record("A", **address, **{cols.SERVED_DISTRICTS: "District 2"}))
    older = processor.geocode_record(1, {cols.ORGANIZATION_NAME: "B", legacy: "District 3", **address})

    assert current.to_dict()['otherDistricts'] == "District 2"
    assert older.to_dict()['otherDistricts'] == "District 3"


def test_malformed_service_response_fails_one_record_only(geocode_env, write_workbook):
    write_workbook(survey_rows())
    session = Mock()
    session.get.return_value = Mock(ok=True, status_code=200, **{'json.return_value': ["not an object"]})
    client = NominatimClient(ConfigManager(), session=session)

    report = make_processor(client).run()

    assert report['processing_summary']['service_errors'] == 2
    assert report['cache_statistics']['cache_saved'] is True
    cache = json.loads((geocode_env / 'data' / 'geocode-cache.json').read_text(encoding='utf-8'))
    assert cache == {
        FOOD_BANK_QUERY.lower(): None,
        "300 nowhere ln, los angeles, ca, 90002": None,
    }
