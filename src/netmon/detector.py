"""
检测模块：基于阈值的告警规则。

- 输入：窗口中最新的 TrafficSample 与负载仪表数值
- 输出：Alert 序列（尚未编号，由 controller 编号并做冷却）
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from .config import default_rules
from .sink import Alert
from .types import TrafficSample


class RuleDetector:
    """
    规则检测器：带宽、延迟、包速率、网络负载四条阈值规则。
    """

    def __init__(self, rules: Optional[Dict[str, Dict[str, Any]]] = None):
        self.rules = rules if rules is not None else default_rules()

    def _check(
        self,
        rule_name: str,
        alert_type: str,
        value: float,
        unit: str,
        now: datetime,
    ) -> Optional[Alert]:
        rule = self.rules.get(rule_name)
        if rule is None:
            return None

        threshold = float(rule["threshold"])
        if value <= threshold:
            return None

        # 刚越过阈值记 50 分，每超出阈值 1% 加 1 分
        score = min(100.0, 50.0 + (value / threshold - 1) * 100) if threshold > 0 else 100.0
        description = rule.get("description", alert_type)
        return Alert(
            id="",
            timestamp=now,
            level=rule.get("level", "warning"),
            alert_type=alert_type,
            message=f"{description}：{value:.1f} {unit}（阈值 {threshold:g} {unit}）",
            score=score,
            detail={
                "rule": rule_name,
                "value": value,
                "threshold": threshold,
            },
        )

    def detect(
        self,
        sample: Optional[TrafficSample],
        network_load: float,
        now: Optional[datetime] = None,
    ) -> List[Alert]:
        """
        对最新采样点和负载仪表逐条匹配规则，返回所有触发的告警。
        """
        now = now or datetime.now()
        candidates = []

        if sample is not None:
            # 带宽
            candidates.append(self._check("high_bandwidth", "High Bandwidth", sample.bandwidth, "Mbps", now))
            # 延迟
            candidates.append(self._check("high_latency", "High Latency", sample.latency, "ms", now))
            # 包速率
            candidates.append(self._check("packet_rate", "Packet Rate Peak", sample.packet_rate, "pps", now))

        # 负载仪表
        candidates.append(self._check("network_load", "Network Load", network_load, "%", now))

        return [a for a in candidates if a is not None]
