import pytest

from netmon.detector import RuleDetector
from netmon.types import TrafficSample


def _sample(now, bandwidth=500.0, packet_rate=20000.0, latency=10.0):
    return TrafficSample(now, now.strftime("%H:%M"), bandwidth, packet_rate, latency)


def test_quiet_sample_raises_nothing(now):
    assert RuleDetector().detect(_sample(now), 50.0, now) == []


def test_high_bandwidth_warning(now):
    alerts = RuleDetector().detect(_sample(now, bandwidth=1100.0), 50.0, now)
    assert len(alerts) == 1
    alert = alerts[0]
    assert alert.alert_type == "High Bandwidth"
    assert alert.level == "warning"
    assert alert.detail["rule"] == "high_bandwidth"
    assert alert.score == pytest.approx(60.0)
    assert alert.timestamp == now


def test_score_grows_with_excess_and_is_capped(now):
    alerts = RuleDetector().detect(_sample(now, latency=24.0), 50.0, now)
    assert [a.alert_type for a in alerts] == ["High Latency"]
    assert alerts[0].score == pytest.approx(70.0)

    detector = RuleDetector({"high_latency": {"threshold": 1.0}})
    assert detector.detect(_sample(now, latency=24.0), 50.0, now)[0].score == 100.0


def test_network_load_error_without_sample(now):
    alerts = RuleDetector().detect(None, 95.0, now)
    assert [(a.alert_type, a.level) for a in alerts] == [("Network Load", "error")]


def test_all_rules_fire_together(now):
    sample = _sample(now, bandwidth=1150.0, packet_rate=59000.0, latency=22.0)
    alerts = RuleDetector().detect(sample, 99.0, now)
    assert {a.detail["rule"] for a in alerts} == {"high_bandwidth", "high_latency", "packet_rate", "network_load"}
    assert {a.level for a in alerts} == {"warning", "info", "error"}


def test_custom_rules(now):
    detector = RuleDetector({"high_latency": {"threshold": 5.0, "level": "error", "description": "延迟"}})
    alerts = detector.detect(_sample(now, bandwidth=1190.0, latency=10.0), 99.0, now)
    assert len(alerts) == 1
    assert alerts[0].level == "error"
    assert alerts[0].message.startswith("延迟")
