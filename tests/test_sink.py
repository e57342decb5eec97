import json

from netmon.sink import Alert, log_alert, print_alert


def _alert(now):
    return Alert(
        id="7",
        timestamp=now,
        level="error",
        alert_type="Network Load",
        message="网络负载过高：95.0 %",
        score=55.5,
        detail={"rule": "network_load", "value": 95.0},
    )


def test_log_alert_appends_json_lines(tmp_path, now):
    log_path = tmp_path / "nested" / "alerts.log"
    log_alert(_alert(now), str(log_path))
    log_alert(_alert(now), str(log_path))

    lines = log_path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    record = json.loads(lines[0])
    assert record["id"] == "7"
    assert record["timestamp"] == "2024-05-01T12:00:00"
    assert record["message"] == "网络负载过高：95.0 %"
    assert record["detail"]["rule"] == "network_load"


def test_print_alert(capsys, now):
    print_alert(_alert(now))
    out = capsys.readouterr().out
    assert "[ERROR]" in out
    assert "[Network Load]" in out
    assert "score=55.500" in out
