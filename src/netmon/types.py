"""
仪表盘内部使用的统一数据结构。

- TrafficSample  : Source 层输出的单个流量采样点（滑动窗口元素）
- PacketRecord   : Source 层输出的合成数据包记录
- FilterCriteria : Filter 层的用户过滤条件
- NetworkMetric / ProtocolStat / GeoLocation : Feature 层输出的展示数据

采样点与数据包一经创建不可修改，过滤只产生新的视图。
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Tuple


PROTOCOLS: Tuple[str, ...] = ("HTTP", "HTTPS", "TCP", "UDP", "ICMP", "SSH", "FTP")

TCP_FLAGS: Tuple[str, ...] = ("SYN", "ACK")


@dataclass(frozen=True)
class TrafficSample:
    """Source 层：滑动窗口中的一个采样点。"""

    timestamp: datetime
    label: str           # 图表横轴显示用，HH:MM
    bandwidth: float     # Mbps
    packet_rate: float   # 包/秒
    latency: float       # ms


@dataclass(frozen=True)
class PacketRecord:
    """Source 层：一条合成数据包记录。"""

    id: str
    timestamp: datetime
    source_address: str
    destination_address: str
    protocol: str
    size_bytes: int
    flags: Tuple[str, ...] = field(default_factory=tuple)
    payload_preview: str = ""

    def __post_init__(self):
        # 保证 flags 为不可变的 tuple
        if not isinstance(self.flags, tuple):
            object.__setattr__(self, "flags", tuple(self.flags))

    @property
    def time_label(self) -> str:
        """列表中显示的时间字符串。"""
        return self.timestamp.strftime("%H:%M:%S")


@dataclass(frozen=True)
class FilterCriteria:
    """Filter 层：用户输入的过滤条件，默认值即“不过滤”。"""

    protocol: str = "all"
    source: str = ""
    destination: str = ""
    time_range: str = "1h"
    payload_search: str = ""


@dataclass(frozen=True)
class NetworkMetric:
    label: str
    value: str
    trend: str   # up / down / stable
    change: str  # 例如 "+15.0%"


@dataclass(frozen=True)
class ProtocolStat:
    name: str
    percentage: float
    bytes: int
    packets: int
    color: str


@dataclass(frozen=True)
class GeoLocation:
    address: str
    country: str
    city: str
    latitude: float
    longitude: float
    packets: int
    bytes: int
