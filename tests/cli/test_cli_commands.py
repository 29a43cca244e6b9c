import json
from unittest.mock import patch

import pytest

from nightframe import __version__
from nightframe.cli.main import main
from nightframe.config import CONFIG_ENV_VAR

RECOMMEND_ARGS = [
    "recommend",
    "--lat", "40",
    "--lon", "-75",
    "--sensor-w", "23.5",
    "--sensor-h", "15.6",
    "--focal-mm", "200",
    "--f-num", "4",
    "--date", "2025-01-15T02:00:00Z",
    "--min-alt", "20",
]

SAMPLE_CSV = "\n".join(
    [
        "Name;Type;RA;Dec;MajAx;V-Mag",
        "NGC0224;G;00:42:44.35;+41:16:08.6;177.83;3.44",
        "IC0001;**;00:08:27.05;+27:43:03.6;;",
        "NGC0002;G;;;1.0;",
    ]
)


@pytest.fixture
def config_path(tmp_path, monkeypatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    path = tmp_path / "config.toml"
    path.write_text("[catalog]\nenabled = false\n", encoding="utf-8")
    return str(path)


def test_version(capsys):
    assert main(["--version"]) == 0
    assert capsys.readouterr().out.strip() == f"Nightframe {__version__}"


def test_recommend_json(capsys, config_path):
    code = main(RECOMMEND_ARGS + ["--config", config_path, "--json"])
    assert code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["ok"] is True
    assert payload["command"] == "recommend"
    names = [t["name"] for t in payload["data"]["recommended_targets"]]
    assert "Orion Nebula" in names


def test_recommend_text(capsys, config_path):
    code = main(RECOMMEND_ARGS + ["--config", config_path, "--limit", "5", "--verbose"])
    assert code == 0
    out = capsys.readouterr().out
    assert "Nightframe Recommendations" in out
    assert "fill" in out
    assert "  5." in out


def test_recommend_invalid_latitude(capsys, config_path):
    args = list(RECOMMEND_ARGS)
    args[args.index("40")] = "95"
    code = main(args + ["--config", config_path, "--json"])
    assert code == 2
    payload = json.loads(capsys.readouterr().out)
    assert payload["ok"] is False
    assert payload["error"]["code"] == "invalid_parameters"
    assert payload["error"]["details"][0]["field"] == "lat"


def test_recommend_invalid_date(capsys, config_path):
    args = list(RECOMMEND_ARGS)
    args[args.index("2025-01-15T02:00:00Z")] = "mid-january"
    assert main(args + ["--config", config_path]) == 2
    assert capsys.readouterr().err


def test_catalog_reports_skipped_rows(capsys, config_path, tmp_path):
    source = tmp_path / "NGC.csv"
    source.write_text(SAMPLE_CSV, encoding="utf-8")
    code = main(["catalog", "--config", config_path, "--source", str(source), "--json"])
    assert code == 0
    data = json.loads(capsys.readouterr().out)["data"]
    assert data["targets"] == 1
    assert data["skipped"] == 2
    assert data["skipped_by_reason"] == {"excluded type **": 1, "missing coordinates": 1}


def test_catalog_unreachable_source(capsys, config_path, tmp_path):
    code = main(["catalog", "--config", config_path, "--source", str(tmp_path / "missing.csv")])
    assert code == 2
    assert "not found" in capsys.readouterr().err


def test_doctor_offline(capsys, config_path):
    code = main(["doctor", "--config", config_path, "--json"])
    assert code == 0
    checks = json.loads(capsys.readouterr().out)["data"]["checks"]
    assert checks["curated_catalog"]["ok"]
    assert checks["openngc"]["detail"] == "disabled"


def test_serve_runs_uvicorn_factory(config_path, monkeypatch):
    # serve exports the config path for the app factory; restore it afterwards
    monkeypatch.setenv(CONFIG_ENV_VAR, config_path)
    with patch("uvicorn.run") as mock_run:
        code = main(["serve", "--config", config_path, "--port", "8123"])
    assert code == 0
    args, kwargs = mock_run.call_args
    assert args == ("nightframe.api.app:create_app",)
    assert kwargs["factory"] is True
    assert kwargs["port"] == 8123
    assert kwargs["host"] == "127.0.0.1"


def test_no_command_prints_help(capsys):
    assert main([]) == 0
    assert "recommend" in capsys.readouterr().out
