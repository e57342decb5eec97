"""
配置模块：仪表盘的全部可调参数。

默认值与界面原型一致；可以通过 JSON 配置文件覆盖任意字段，
其中 rules 字段按规则名逐条合并，而不是整体替换。
"""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional, Tuple
import json
import os

from .types import PROTOCOLS, TCP_FLAGS


def default_rules() -> Dict[str, Dict[str, Any]]:
    return {
        "high_bandwidth": {
            "threshold": 1000.0,  # Mbps
            "level": "warning",
            "description": "带宽占用过高",
        },
        "high_latency": {
            "threshold": 20.0,  # ms
            "level": "warning",
            "description": "网络延迟过高",
        },
        "packet_rate": {
            "threshold": 55000.0,  # 包/秒
            "level": "info",
            "description": "包速率接近峰值",
        },
        "network_load": {
            "threshold": 90.0,  # 百分比
            "level": "error",
            "description": "网络负载过高",
        },
    }


def default_payloads() -> Dict[str, str]:
    return {
        "HTTP": "HTTP GET /api/data...",
        "HTTPS": "TLS 1.3 Application Data...",
        "TCP": "TCP keep-alive segment...",
        "UDP": "UDP datagram, DNS query A example.com...",
        "ICMP": "ICMP echo request id=1 seq=42...",
        "SSH": "SSH-2.0-OpenSSH_8.9 key exchange...",
        "FTP": "227 Entering Passive Mode (10,0,0,15,195,80)...",
    }


@dataclass
class DashboardConfig:
    # 滑动窗口
    window_size: int = 60
    sample_spacing_seconds: int = 60   # 初始窗口相邻采样点间隔
    tick_seconds: float = 1.0

    # 采样分布，左闭右开
    bandwidth_range: Tuple[float, float] = (200.0, 1200.0)
    packet_rate_range: Tuple[float, float] = (10000.0, 60000.0)
    latency_range: Tuple[float, float] = (5.0, 25.0)

    # 数据包集合
    packet_count: int = 100
    packet_history_seconds: int = 3600
    size_range: Tuple[int, int] = (64, 1564)
    addresses: Tuple[str, ...] = ("192.168.1.100", "10.0.0.15", "172.16.0.1", "8.8.8.8", "1.1.1.1")
    protocols: Tuple[str, ...] = PROTOCOLS
    flags: Tuple[str, ...] = TCP_FLAGS
    payloads: Dict[str, str] = field(default_factory=default_payloads)

    # 负载仪表随机游走
    initial_load: float = 67.0
    load_step: float = 5.0

    # 告警
    rules: Dict[str, Dict[str, Any]] = field(default_factory=default_rules)
    alert_cooldown_seconds: float = 30.0
    max_alerts: int = 50
    alerts_log: str = "data/alerts.log"

    # 导出
    export_dir: str = "data/exports"


_TUPLE_FIELDS = {
    "bandwidth_range",
    "packet_rate_range",
    "latency_range",
    "size_range",
    "addresses",
    "protocols",
    "flags",
}


def load_config(config_file: Optional[str] = None) -> DashboardConfig:
    """
    加载配置。

    参数：
        config_file: JSON 配置文件路径（可选），不存在或解析失败时使用默认配置
    """
    config = DashboardConfig()
    if not config_file or not os.path.exists(config_file):
        return config

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            overrides = json.load(f)
    except (OSError, ValueError) as e:
        print(f"Error loading config file: {e}")
        return config

    if not isinstance(overrides, dict):
        print(f"Error loading config file: top level must be an object, got {type(overrides).__name__}")
        return config

    known = {f.name for f in fields(DashboardConfig)}
    for key, value in overrides.items():
        if key not in known:
            print(f"Unknown config key ignored: {key}")
            continue
        if key in ("rules", "payloads") and not isinstance(value, dict):
            print(f"Invalid config value ignored: {key} must be an object")
            continue
        if key == "rules":
            for rule_name, rule in value.items():
                if not isinstance(rule, dict):
                    print(f"Invalid rule ignored: {rule_name}")
                    continue
                config.rules.setdefault(rule_name, {}).update(rule)
        elif key == "payloads":
            config.payloads.update(value)
        elif key in _TUPLE_FIELDS:
            if not isinstance(value, list):
                print(f"Invalid config value ignored: {key} must be a list")
                continue
            setattr(config, key, tuple(value))
        else:
            setattr(config, key, value)

    return config
