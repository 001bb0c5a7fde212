import json

import pytest

import main


HEADERS = ["Organization Name", "Sector", "Main Org Street Address (headquarters)", "Main Org Zip Code"]


@pytest.fixture
def quiet_run(geocode_env):
    return ["--log-file", str(geocode_env / "logs" / "run.log")]


def test_export_writes_chart_data(quiet_run, geocode_env, write_workbook, capsys):
    survey = write_workbook([HEADERS, ["Food Bank", "Nonprofit/CBO", "", ""], ["Co-op", "Foundation", "", ""]])
    output = geocode_env / "out" / "charts.json"

    exit_code = main.main(quiet_run + ["export", str(output), "--survey-file", str(survey)])

    assert exit_code == 0
    charts = json.loads(output.read_text(encoding="utf-8"))
    assert charts['summary']['totalOrganizations'] == 2
    assert charts['summary']['sectorBreakdown'] == {"Nonprofit": 1, "Foundation": 1}
    assert "Exported chart data for 2 organizations" in capsys.readouterr().out


def test_export_reports_unreadable_survey(quiet_run, geocode_env):
    exit_code = main.main(quiet_run + ["export", str(geocode_env / "charts.json"),
                                       "--survey-file", str(geocode_env / "absent.xlsx")])
    assert exit_code == 1


def test_geocode_without_addresses_makes_no_requests(quiet_run, geocode_env, write_workbook, capsys):
    write_workbook([HEADERS, ["Food Bank", "Nonprofit/CBO", "", ""]])

    exit_code = main.main(quiet_run + ["geocode"])

    assert exit_code == 0
    document = json.loads((geocode_env / "data" / "organizations.json").read_text(encoding="utf-8"))
    assert document['metadata']['geocodedOrganizations'] == 0
    assert "Geocoded 0/1 organizations" in capsys.readouterr().out


def test_geocode_rejects_bad_override_table(quiet_run, geocode_env, monkeypatch):
    bad = geocode_env / "overrides.json"
    bad.write_text("[]", encoding="utf-8")
    monkeypatch.setenv('GEOCODE_OVERRIDES_FILE', str(bad))

    assert main.main(quiet_run + ["geocode"]) == 1


def test_invalid_configuration(quiet_run, monkeypatch):
    monkeypatch.setenv('GEOCODE_DELAY', 'later')
    assert main.main(quiet_run + ["export", "charts.json"]) == 1


def test_command_is_required():
    with pytest.raises(SystemExit):
        main.main([])


def test_export_reports_unwritable_output(quiet_run, geocode_env, write_workbook, capsys):
    survey = write_workbook([HEADERS, ["Food Bank", "Nonprofit/CBO", "", ""]])
    blocker = geocode_env / "not-a-directory"
    blocker.write_text("", encoding="utf-8")

    exit_code = main.main(quiet_run + ["export", str(blocker / "charts.json"), "--survey-file", str(survey)])

    assert exit_code == 1
    assert "Failed to write chart data" in capsys.readouterr().out
