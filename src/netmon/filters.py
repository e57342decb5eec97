"""
Filter 层：根据用户条件从数据包集合中选出可见子集。

过滤是纯函数：不修改任何 PacketRecord，也不修改原集合，
只返回保持原相对顺序的新列表。条件不合法（未知协议、未知时间范围）
时该条件匹配不到任何记录，不抛异常。

时间范围以数据包集合本身为基准（生成时刻或最新一条记录的时间），
不读取系统时钟，因此结果只取决于输入。
"""

from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Optional

from .types import FilterCriteria, PacketRecord


TIME_RANGES = {
    "1h": timedelta(hours=1),
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
}


def compile_packet_filter(
    criteria: FilterCriteria,
    reference: datetime,
) -> Callable[[PacketRecord], bool]:
    """
    把过滤条件编译成单条记录的谓词。

    reference 为时间范围的终点，早于 reference - 范围 的记录不匹配。
    """
    window = TIME_RANGES.get(criteria.time_range)
    cutoff = reference - window if window is not None else None
    search = criteria.payload_search.lower()

    def _match(packet: PacketRecord) -> bool:
        if criteria.protocol != "all" and packet.protocol != criteria.protocol:
            return False
        if criteria.source and criteria.source not in packet.source_address:
            return False
        if criteria.destination and criteria.destination not in packet.destination_address:
            return False
        if search and search not in packet.payload_preview.lower():
            return False
        if cutoff is None or packet.timestamp < cutoff:
            return False
        return True

    return _match


def evaluate(
    records: Iterable[PacketRecord],
    criteria: FilterCriteria,
    reference: Optional[datetime] = None,
) -> List[PacketRecord]:
    """
    返回满足全部条件的记录，保持原顺序。

    reference 缺省取记录中最新的时间戳。
    """
    records = list(records)
    if not records:
        return []
    if reference is None:
        reference = max(p.timestamp for p in records)
    pred = compile_packet_filter(criteria, reference)
    return [p for p in records if pred(p)]
