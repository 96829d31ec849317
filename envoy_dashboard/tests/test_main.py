# envoy_dashboard/tests/test_main.py

import json

from envoy_dashboard.main import main


def _config(tmp_path, extra=""):
    path = tmp_path / "envoy_dashboard.conf"
    path.write_text(
        "[envoy]\ntoken =\n[weather]\napi_key =\n" + extra,
        encoding="utf-8",
    )
    return str(path)


def test_main_json_without_credentials(tmp_path, capsys):
    main(["--config", _config(tmp_path), "--quiet", "--json", "snapshot"])
    payload = json.loads(capsys.readouterr().out)

    assert payload["weather"] is None
    assert payload["solar"] is None
    assert payload["lastUpdated"]


def test_main_solar_command_writes_structured_log(tmp_path, capsys):
    log_path = tmp_path / "runs.jsonl"
    extra = f"[logging]\nstructured_enabled = true\nstructured_path = {log_path}\n"
    main(["--config", _config(tmp_path, extra), "--quiet", "solar"])

    out = capsys.readouterr().out
    assert "Solar: unavailable" in out
    assert "Weather" not in out

    entry = json.loads(log_path.read_text(encoding="utf-8").strip())
    assert entry["snapshot"]["solar"] is None
    assert "production" in entry["unavailable_sources"]
    assert entry["command"] == "solar"
    assert entry["elapsed_s"] >= 0
