"""
导出模块：把仪表盘数据导出为 CSV / JSON。

- CSV 只包含完整（未过滤）的数据包集合
- JSON 包含指标、协议统计、告警、流量窗口、数据包和地理分布
文件名带当天日期。写文件失败只返回错误信息，不中断界面。
"""

from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import Any, Dict, Iterable, Optional
import json
import pathlib

import pandas as pd

from .controller import DashboardState
from .features import build_metrics, geo_breakdown, protocol_breakdown
from .sink import alert_to_dict
from .types import PacketRecord


CSV_COLUMNS = ["timestamp", "source", "destination", "protocol", "size", "flags", "payload"]


@dataclass(frozen=True)
class Export:
    filename: str
    content: str
    mime: str


@dataclass(frozen=True)
class SaveResult:
    ok: bool
    path: Optional[str] = None
    error: Optional[str] = None


def packet_to_dict(packet: PacketRecord) -> Dict[str, Any]:
    return {
        "id": packet.id,
        "timestamp": packet.timestamp.isoformat(timespec="seconds"),
        "source": packet.source_address,
        "destination": packet.destination_address,
        "protocol": packet.protocol,
        "size": packet.size_bytes,
        "flags": list(packet.flags),
        "payload": packet.payload_preview,
    }


def packets_to_csv(packets: Iterable[PacketRecord]) -> str:
    """
    序列化数据包集合为 CSV 文本。

    含逗号、引号的字段会被正确加引号；标志位以 ";" 连接；
    空集合只输出表头。
    """
    rows = []
    for p in packets:
        row = packet_to_dict(p)
        row["flags"] = ";".join(p.flags)
        rows.append(row)
    df = pd.DataFrame(rows, columns=CSV_COLUMNS)
    return df.to_csv(index=False, lineterminator="\n")


def dashboard_to_json(state: DashboardState, now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    payload = {
        "export_date": now.isoformat(),
        "metrics": [asdict(m) for m in build_metrics(state.window, state.packets)],
        "protocols": [asdict(p) for p in protocol_breakdown(state.packets)],
        "alerts": [alert_to_dict(a) for a in state.alerts],
        "traffic_data": [
            {
                "time": s.label,
                "timestamp": s.timestamp.isoformat(timespec="seconds"),
                "bandwidth": s.bandwidth,
                "packets": s.packet_rate,
                "latency": s.latency,
            }
            for s in state.window
        ],
        "packets": [packet_to_dict(p) for p in state.packets],
        "geo_locations": [asdict(g) for g in geo_breakdown(state.packets)],
    }
    return json.dumps(payload, ensure_ascii=False, indent=2)


def csv_filename(day: Optional[date] = None) -> str:
    day = day or date.today()
    return f"network_traffic_{day:%Y-%m-%d}.csv"


def json_filename(day: Optional[date] = None) -> str:
    day = day or date.today()
    return f"network_monitor_{day:%Y-%m-%d}.json"


def csv_export(packets: Iterable[PacketRecord], day: Optional[date] = None) -> Export:
    return Export(filename=csv_filename(day), content=packets_to_csv(packets), mime="text/csv")


def json_export(state: DashboardState, now: Optional[datetime] = None) -> Export:
    now = now or datetime.now()
    return Export(
        filename=json_filename(now.date()),
        content=dashboard_to_json(state, now),
        mime="application/json",
    )


def save_export(export: Export, directory: str) -> SaveResult:
    """将导出内容写入目录；失败时打印并返回错误信息。"""
    path = pathlib.Path(directory) / export.filename
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(export.content)
    except OSError as e:
        message = f"导出失败：{path}：{e}"
        print(message)
        return SaveResult(ok=False, path=str(path), error=message)
    return SaveResult(ok=True, path=str(path))
