"""
Controller：仪表盘状态与定时刷新。

所有状态集中在一个不可变的 DashboardState 中，由 DashboardController 持有；
每个用户事件对应一个 reducer（state -> state），定时器对应 tick。
tick 本身只依赖传入的随机源和时间，不依赖真实定时器，便于测试。
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np

from .config import DashboardConfig
from .detector import RuleDetector
from .filters import evaluate
from .sink import Alert, log_alert, print_alert
from .source import generate_initial_window, generate_packet_set, step_network_load, tick_window
from .types import FilterCriteria, PacketRecord, TrafficSample


TABS: Tuple[str, ...] = ("dashboard", "analytics", "packets", "filters")


@dataclass(frozen=True)
class DashboardState:
    now: datetime
    window: Tuple[TrafficSample, ...]
    packets: Tuple[PacketRecord, ...]
    packets_generated_at: Optional[datetime] = None  # 数据包集合的生成时刻，时间过滤以此为终点
    monitoring: bool = True
    network_load: float = 67.0
    active_tab: str = "dashboard"
    filters: FilterCriteria = field(default_factory=FilterCriteria)
    selected_packet_id: Optional[str] = None
    alerts: Tuple[Alert, ...] = ()      # 从新到旧
    new_alerts: Tuple[Alert, ...] = ()  # 最近一次 tick 新产生的告警
    alert_seq: int = 0
    last_fired: Dict[str, datetime] = field(default_factory=dict)

    @property
    def selected_packet(self) -> Optional[PacketRecord]:
        for p in self.packets:
            if p.id == self.selected_packet_id:
                return p
        return None


def init_state(
    rng: np.random.Generator,
    config: DashboardConfig,
    now: Optional[datetime] = None,
) -> DashboardState:
    """启动时生成初始窗口和数据包集合。"""
    now = now or datetime.now()
    return DashboardState(
        now=now,
        window=generate_initial_window(rng, config, now),
        packets=generate_packet_set(rng, config.packet_count, config, now),
        packets_generated_at=now,
        network_load=config.initial_load,
    )


def _raise_alerts(
    state: DashboardState,
    raised: List[Alert],
    config: DashboardConfig,
    now: datetime,
):
    """给新告警编号；同一规则在冷却时间内只告警一次。"""
    seq = state.alert_seq
    last_fired = dict(state.last_fired)
    fresh = []

    for alert in raised:
        rule = alert.detail.get("rule", alert.alert_type)
        last = last_fired.get(rule)
        if last is not None and (now - last).total_seconds() < config.alert_cooldown_seconds:
            continue
        seq += 1
        last_fired[rule] = now
        fresh.append(replace(alert, id=str(seq)))

    return tuple(fresh), seq, last_fired


def tick(
    state: DashboardState,
    rng: np.random.Generator,
    config: DashboardConfig,
    now: Optional[datetime] = None,
    detector: Optional[RuleDetector] = None,
) -> DashboardState:
    """
    一次定时刷新：
    - 刷新时钟
    - 负载仪表随机游走
    - 监控开启时滑动窗口前进一步
    - 执行告警规则（监控关闭时只检查负载）

    detector 缺省按 config.rules 新建。
    """
    now = now or datetime.now()
    load = step_network_load(state.network_load, rng, config)

    window = state.window
    newest = None
    if state.monitoring:
        window = tick_window(window, rng, config, now)
        newest = window[-1]

    if detector is None:
        detector = RuleDetector(config.rules)
    raised = detector.detect(newest, load, now)
    fresh, seq, last_fired = _raise_alerts(state, raised, config, now)
    alerts = (tuple(reversed(fresh)) + state.alerts)[:config.max_alerts]

    return replace(
        state,
        now=now,
        network_load=load,
        window=window,
        alerts=alerts,
        new_alerts=fresh,
        alert_seq=seq,
        last_fired=last_fired,
    )


# ---- reducers ----

def toggle_monitoring(state: DashboardState) -> DashboardState:
    return replace(state, monitoring=not state.monitoring)


def update_filters(state: DashboardState, **changes) -> DashboardState:
    """修改部分过滤条件，未知字段抛 TypeError。"""
    return replace(state, filters=replace(state.filters, **changes))


def reset_filters(state: DashboardState) -> DashboardState:
    return replace(state, filters=FilterCriteria())


def select_packet(state: DashboardState, packet_id: Optional[str]) -> DashboardState:
    known = packet_id is not None and any(p.id == packet_id for p in state.packets)
    return replace(state, selected_packet_id=packet_id if known else None)


def select_tab(state: DashboardState, tab: str) -> DashboardState:
    if tab not in TABS:
        raise ValueError(f"Unknown tab: {tab}")
    return replace(state, active_tab=tab)


def clear_alerts(state: DashboardState) -> DashboardState:
    return replace(state, alerts=(), new_alerts=())


def regenerate_packets(
    state: DashboardState,
    rng: np.random.Generator,
    config: DashboardConfig,
    now: Optional[datetime] = None,
) -> DashboardState:
    """重新生成数据包集合（以当前时刻为最近一小时的终点）。"""
    now = now or datetime.now()
    packets = generate_packet_set(rng, config.packet_count, config, now)
    return replace(state, packets=packets, packets_generated_at=now, selected_packet_id=None)


def visible_packets(state: DashboardState) -> List[PacketRecord]:
    return evaluate(state.packets, state.filters, state.packets_generated_at)


class DashboardController:
    """
    持有状态、随机源和配置，是界面与核心逻辑之间唯一的交互点。
    """

    def __init__(
        self,
        config: Optional[DashboardConfig] = None,
        rng: Optional[np.random.Generator] = None,
        now: Optional[datetime] = None,
    ):
        self.config = config or DashboardConfig()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.detector = RuleDetector(self.config.rules)
        self.state = init_state(self.rng, self.config, now)

    def seconds_until_tick(self, now: Optional[datetime] = None) -> float:
        now = now or datetime.now()
        elapsed = (now - self.state.now).total_seconds()
        return max(0.0, self.config.tick_seconds - elapsed)

    def handle_tick(self, now: Optional[datetime] = None) -> List[Alert]:
        """
        距上次 tick 已满一个周期时执行 tick，并输出新告警。

        返回本次新产生的告警；未到周期时返回空列表。
        """
        now = now or datetime.now()
        if self.seconds_until_tick(now) > 0:
            return []

        self.state = tick(self.state, self.rng, self.config, now, self.detector)
        for alert in self.state.new_alerts:
            print_alert(alert)
            log_alert(alert, self.config.alerts_log)
        return list(self.state.new_alerts)

    def dispatch(self, handler: Callable[..., DashboardState], **kwargs) -> DashboardState:
        self.state = handler(self.state, **kwargs)
        return self.state

    def regenerate(self, now: Optional[datetime] = None) -> DashboardState:
        return self.dispatch(regenerate_packets, rng=self.rng, config=self.config, now=now)

    def visible_packets(self) -> List[PacketRecord]:
        return visible_packets(self.state)
