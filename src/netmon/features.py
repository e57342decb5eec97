"""
Feature 层：由窗口和数据包集合计算展示用的派生数据。

- 指标卡片：带宽、延迟、包速率、活跃流
- 协议统计：各协议包数、字节数、占比
- 地理分布：地址池中各节点的流量
"""

from typing import Iterable, List

import pandas as pd

from .types import GeoLocation, NetworkMetric, PacketRecord, ProtocolStat, TrafficSample


PROTOCOL_COLORS = {
    "HTTP": "#00D4FF",
    "HTTPS": "#0097B2",
    "TCP": "#4ECDC4",
    "UDP": "#FFD93D",
    "ICMP": "#FF6B6B",
    "SSH": "#A78BFA",
    "FTP": "#F4A261",
}
OTHER_COLOR = "#95A5A6"

# 地址池对应的静态地理信息：国家、城市、纬度、经度
GEO_TABLE = {
    "192.168.1.100": ("Russia", "Moscow", 55.7558, 37.6173),
    "10.0.0.15": ("Russia", "Saint Petersburg", 59.9343, 30.3351),
    "172.16.0.1": ("Germany", "Frankfurt", 50.1109, 8.6821),
    "8.8.8.8": ("United States", "Mountain View", 37.3861, -122.0839),
    "1.1.1.1": ("Australia", "Sydney", -33.8688, 151.2093),
}

WINDOW_COLUMNS = ["timestamp", "time", "bandwidth", "packets", "latency"]
PACKET_COLUMNS = ["id", "timestamp", "time", "source", "destination", "protocol", "size", "flags", "payload"]

# 变化幅度小于该百分比视为 stable
TREND_EPSILON = 1.0


def window_frame(window: Iterable[TrafficSample]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "timestamp": s.timestamp,
                "time": s.label,
                "bandwidth": s.bandwidth,
                "packets": s.packet_rate,
                "latency": s.latency,
            }
            for s in window
        ],
        columns=WINDOW_COLUMNS,
    )


def packets_frame(packets: Iterable[PacketRecord]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "id": p.id,
                "timestamp": p.timestamp,
                "time": p.time_label,
                "source": p.source_address,
                "destination": p.destination_address,
                "protocol": p.protocol,
                "size": p.size_bytes,
                "flags": list(p.flags),
                "payload": p.payload_preview,
            }
            for p in packets
        ],
        columns=PACKET_COLUMNS,
    )


def _format_bandwidth(mbps: float) -> str:
    if mbps >= 1000:
        return f"{mbps / 1000:.2f} Gbps"
    return f"{mbps:.0f} Mbps"


def _change(current: float, baseline: float) -> float:
    if baseline == 0:
        return 0.0
    return float((current - baseline) / baseline * 100.0)


def _metric(label: str, value: str, pct: float) -> NetworkMetric:
    if pct >= TREND_EPSILON:
        trend = "up"
    elif pct <= -TREND_EPSILON:
        trend = "down"
    else:
        trend = "stable"
    return NetworkMetric(label=label, value=value, trend=trend, change=f"{pct:+.1f}%")


def build_metrics(
    window: Iterable[TrafficSample],
    packets: Iterable[PacketRecord],
) -> List[NetworkMetric]:
    """
    计算指标卡片。

    数值取窗口中最新的点，变化率相对于窗口其余点的均值；
    窗口为空时返回空列表。
    """
    df = window_frame(window)
    if df.empty:
        return []

    newest = df.iloc[-1]
    baseline = df.iloc[:-1] if len(df) > 1 else df
    means = baseline[["bandwidth", "packets", "latency"]].mean()

    pkt_df = packets_frame(packets)
    flows = len(pkt_df[["source", "destination"]].drop_duplicates())

    return [
        _metric("Bandwidth", _format_bandwidth(newest["bandwidth"]), _change(newest["bandwidth"], means["bandwidth"])),
        _metric("Latency", f"{newest['latency']:.1f} ms", _change(newest["latency"], means["latency"])),
        _metric("Packet Rate", f"{newest['packets'] / 1000:.1f}k/s", _change(newest["packets"], means["packets"])),
        _metric("Active Flows", f"{flows:,}", 0.0),
    ]


def protocol_breakdown(packets: Iterable[PacketRecord]) -> List[ProtocolStat]:
    """按协议聚合包数与字节数，按包数从多到少排序。"""
    df = packets_frame(packets)
    if df.empty:
        return []

    grouped = (
        df.groupby("protocol", as_index=False)
        .agg(packets=("id", "count"), bytes=("size", "sum"))
        .sort_values(["packets", "protocol"], ascending=[False, True])
    )
    total = grouped["packets"].sum()

    return [
        ProtocolStat(
            name=row.protocol,
            percentage=round(float(row.packets) / float(total) * 100.0, 1),
            bytes=int(row.bytes),
            packets=int(row.packets),
            color=PROTOCOL_COLORS.get(row.protocol, OTHER_COLOR),
        )
        for row in grouped.itertuples(index=False)
    ]


def geo_breakdown(packets: Iterable[PacketRecord]) -> List[GeoLocation]:
    """
    统计地理表中每个节点作为源或目的出现的包数和字节数。

    源和目的相同的包只计一次；不在地理表中的地址被忽略。
    """
    df = packets_frame(packets)

    locations = []
    for address, (country, city, lat, lon) in GEO_TABLE.items():
        mask = (df["source"] == address) | (df["destination"] == address)
        locations.append(GeoLocation(
            address=address,
            country=country,
            city=city,
            latitude=lat,
            longitude=lon,
            packets=int(mask.sum()),
            bytes=int(df.loc[mask, "size"].sum()),
        ))

    return sorted(locations, key=lambda g: g.packets, reverse=True)
