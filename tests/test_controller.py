import json
from datetime import timedelta

import pytest

from netmon.config import DashboardConfig
from netmon.detector import RuleDetector
from netmon.controller import (
    DashboardController,
    clear_alerts,
    init_state,
    regenerate_packets,
    reset_filters,
    select_packet,
    select_tab,
    tick,
    toggle_monitoring,
    update_filters,
    visible_packets,
)
from netmon.types import FilterCriteria


def _always_alert_config(tmp_path=None, **kwargs):
    """带宽规则阈值极低，每次 tick 都会触发。"""
    rules = {"high_bandwidth": {"threshold": 1.0, "level": "warning", "description": "带宽"}}
    config = DashboardConfig(rules=rules, **kwargs)
    if tmp_path is not None:
        config.alerts_log = str(tmp_path / "logs" / "alerts.log")
    return config


def test_init_state(rng, now):
    state = init_state(rng, DashboardConfig(), now)
    assert len(state.window) == 60
    assert len(state.packets) == 100
    assert state.monitoring
    assert state.network_load == 67.0
    assert state.filters == FilterCriteria()
    assert state.now == now


def test_tick_advances_window_when_monitoring(rng, now):
    config = DashboardConfig()
    state = init_state(rng, config, now)
    later = now + timedelta(seconds=1)
    new_state = tick(state, rng, config, later)

    assert len(new_state.window) == 60
    assert new_state.window[0] == state.window[1]
    assert new_state.window[-1].timestamp == later
    assert new_state.now == later
    assert new_state.packets == state.packets
    assert 0.0 <= new_state.network_load <= 100.0


def test_tick_keeps_window_when_stopped(rng, now):
    config = DashboardConfig()
    state = toggle_monitoring(init_state(rng, config, now))
    later = now + timedelta(seconds=1)
    new_state = tick(state, rng, config, later)

    assert new_state.window == state.window
    assert new_state.now == later
    assert new_state.network_load != state.network_load


def test_tick_alert_cooldown(rng, now):
    config = _always_alert_config(alert_cooldown_seconds=30.0)
    state = init_state(rng, config, now)

    state = tick(state, rng, config, now + timedelta(seconds=1))
    assert [a.id for a in state.new_alerts] == ["1"]

    state = tick(state, rng, config, now + timedelta(seconds=2))
    assert state.new_alerts == ()
    assert len(state.alerts) == 1

    state = tick(state, rng, config, now + timedelta(seconds=40))
    assert [a.id for a in state.new_alerts] == ["2"]
    assert [a.id for a in state.alerts] == ["2", "1"]


def test_alerts_are_capped(rng, now):
    config = _always_alert_config(alert_cooldown_seconds=0.0, max_alerts=3)
    state = init_state(rng, config, now)
    for i in range(1, 6):
        state = tick(state, rng, config, now + timedelta(seconds=i))
    assert [a.id for a in state.alerts] == ["5", "4", "3"]

    assert clear_alerts(state).alerts == ()


def test_filter_reducers(rng, now):
    state = init_state(rng, DashboardConfig(), now)
    state = update_filters(state, protocol="UDP", payload_search="dns")
    assert state.filters.protocol == "UDP"
    assert state.filters.time_range == "1h"
    assert all(p.protocol == "UDP" for p in visible_packets(state))

    state = reset_filters(state)
    assert state.filters == FilterCriteria()
    assert visible_packets(state) == list(state.packets)

    with pytest.raises(TypeError):
        update_filters(state, port="80")


def test_select_packet_and_tab(rng, now):
    state = init_state(rng, DashboardConfig(), now)
    first = state.packets[0]

    state = select_packet(state, first.id)
    assert state.selected_packet == first

    state = select_packet(state, "pkt_missing")
    assert state.selected_packet_id is None
    assert state.selected_packet is None

    assert select_tab(state, "analytics").active_tab == "analytics"
    with pytest.raises(ValueError):
        select_tab(state, "settings")


def test_regenerate_packets_clears_selection(rng, now):
    config = DashboardConfig()
    state = select_packet(init_state(rng, config, now), "pkt_0")
    new_state = regenerate_packets(state, rng, config, now)
    assert new_state.selected_packet_id is None
    assert len(new_state.packets) == 100
    assert new_state.packets != state.packets


def test_controller_ticks_once_per_period(rng, now, tmp_path, capsys):
    config = _always_alert_config(tmp_path)
    controller = DashboardController(config, rng, now)

    assert controller.handle_tick(now + timedelta(milliseconds=500)) == []
    assert controller.seconds_until_tick(now + timedelta(milliseconds=500)) == pytest.approx(0.5)

    alerts = controller.handle_tick(now + timedelta(seconds=1))
    assert len(alerts) == 1
    assert controller.state.now == now + timedelta(seconds=1)

    out = capsys.readouterr().out
    assert "[High Bandwidth]" in out

    with open(config.alerts_log, encoding="utf-8") as f:
        records = [json.loads(line) for line in f]
    assert records[0]["alert_type"] == "High Bandwidth"
    assert records[0]["level"] == "warning"


def test_controller_dispatch(rng, now):
    controller = DashboardController(DashboardConfig(), rng, now)
    controller.dispatch(update_filters, protocol="ICMP")
    assert all(p.protocol == "ICMP" for p in controller.visible_packets())
    controller.dispatch(toggle_monitoring)
    assert not controller.state.monitoring


def test_default_filters_show_all_packets_while_clock_runs(rng, now):
    config = DashboardConfig()
    state = init_state(rng, config, now)
    for i in range(1, 601):
        state = tick(state, rng, config, now + timedelta(seconds=i))
    assert state.now == now + timedelta(minutes=10)
    assert visible_packets(state) == list(state.packets)


def test_regenerate_moves_time_reference(rng, now):
    config = DashboardConfig()
    later = now + timedelta(hours=5)
    state = regenerate_packets(init_state(rng, config, now), rng, config, later)
    assert state.packets_generated_at == later
    assert visible_packets(state) == list(state.packets)


def test_tick_uses_given_detector(rng, now):
    config = DashboardConfig()
    state = init_state(rng, config, now)
    detector = RuleDetector({"network_load": {"threshold": 1.0, "level": "error", "description": "负载"}})
    state = tick(state, rng, config, now + timedelta(seconds=1), detector)
    assert [a.alert_type for a in state.new_alerts] == ["Network Load"]


def test_controller_keeps_one_detector(rng, now, tmp_path):
    config = _always_alert_config(tmp_path)
    controller = DashboardController(config, rng, now)
    detector = controller.detector
    assert detector.rules is config.rules
    controller.handle_tick(now + timedelta(seconds=1))
    controller.handle_tick(now + timedelta(seconds=2))
    assert controller.detector is detector
