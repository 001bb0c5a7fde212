import openpyxl
import pytest

from food_system_survey.models import survey_columns as cols


SURVEY_HEADERS = [
    cols.ORGANIZATION_NAME,
    cols.SECTOR,
    cols.PRIMARY_DISTRICT,
    cols.SERVED_DISTRICTS,
    cols.GOALS,
    cols.ACTIVITIES,
    cols.CHALLENGES,
    cols.CAPACITY_NEEDS,
    cols.STREET_ADDRESS,
    cols.ZIP_CODE,
    cols.PRIMARY_SPA,
    cols.EMAIL,
    cols.WEBSITE,
]


class FakeNominatimClient:
    """Stands in for NominatimClient; answers queries from a dict and records them."""

    def __init__(self, responses=None, error=None):
        self.responses = responses or {}
        self.error = error
        self.queries = []
        self.closed = False

    def search(self, query):
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return self.responses.get(query, [])

    def close(self):
        self.closed = True


def california(lat, lon):
    return [{'lat': str(lat), 'lon': str(lon), 'address': {'state': 'California'}}]


def make_record(name, **fields):
    record = {header: '' for header in SURVEY_HEADERS}
    record[cols.ORGANIZATION_NAME] = name
    record.update(fields)
    return record


@pytest.fixture
def write_workbook(tmp_path):
    """Write rows to an .xlsx file and return its path."""
    def _write(rows, sheet_name="Copy of Survey Responses", file_name="survey.xlsx", extra_sheet_first=None):
        workbook = openpyxl.Workbook()
        default = workbook.active
        if extra_sheet_first:
            default.title = extra_sheet_first
            worksheet = workbook.create_sheet(sheet_name)
        else:
            default.title = sheet_name
            worksheet = default
        for row in rows:
            worksheet.append(row)
        path = tmp_path / file_name
        workbook.save(path)
        return path

    return _write


@pytest.fixture
def geocode_env(tmp_path, monkeypatch):
    """Point every geocoding path at the temp directory, with the usual 2s delay."""
    monkeypatch.setenv('GEOCODE_CACHE_FILE', str(tmp_path / 'data' / 'geocode-cache.json'))
    monkeypatch.setenv('ORGANIZATIONS_OUTPUT_FILE', str(tmp_path / 'data' / 'organizations.json'))
    monkeypatch.setenv('SURVEY_FILE', str(tmp_path / 'survey.xlsx'))
    monkeypatch.setenv('GEOCODE_DELAY', '2')
    monkeypatch.delenv('SURVEY_SHEET_NAME', raising=False)
    monkeypatch.delenv('GEOCODE_OVERRIDES_FILE', raising=False)
    return tmp_path
