import pytest

from conftest import make_record

from food_system_survey.config import ConfigManager
from food_system_survey.models import survey_columns as cols
from food_system_survey.services.spreadsheet_parser import SpreadsheetParser
from food_system_survey.services.survey_processor import SurveyDataProcessor
from web_ui import create_app


@pytest.fixture
def client():
    records = [
        make_record("Food Bank", **{cols.SECTOR: "Nonprofit/CBO", cols.GOALS: "G1, G2"}),
        make_record("Co-op", **{cols.SECTOR: "Foundation", cols.GOALS: "G1, G2"}),
    ]
    app = create_app(processor=SurveyDataProcessor(records))
    return app.test_client()


def test_health(client):
    assert client.get('/health').get_json() == {'ok': True}


def test_network_endpoint(client):
    data = client.get('/api/network').get_json()

    assert len(data['nodes']) == 2
    assert data['links'][0]['strength'] == 4


@pytest.mark.parametrize("chart", ['goals', 'activities', 'challenges', 'capacity', 'flows', 'summary'])
def test_chart_endpoints(client, chart):
    assert client.get(f'/api/{chart}').status_code == 200


def test_unknown_chart(client):
    response = client.get('/api/pie')
    assert response.status_code == 404


def test_unparseable_survey_is_an_error():
    parse_result = SpreadsheetParser().parse_rows([["Org"], ["Food Bank"]])
    app = create_app(processor=SurveyDataProcessor(parse_result.records, parse_result))

    response = app.test_client().get('/api/summary')
    assert response.status_code == 500
    assert response.get_json()['details']


def test_survey_loaded_lazily_from_configuration(geocode_env, write_workbook):
    write_workbook([["Organization Name", "Sector"], ["Food Bank", "Foundation"]])
    app = create_app(config_manager=ConfigManager())

    summary = app.test_client().get('/api/summary').get_json()
    assert summary['sectorBreakdown'] == {"Foundation": 1}


def test_missing_survey_file(geocode_env):
    app = create_app(config_manager=ConfigManager())
    assert app.test_client().get('/api/network').status_code == 500
