"""
Source 层：合成遥测数据的来源。

只做“产生数据”这件事，不做任何真实抓包，输出两类数据：
- TrafficSample 滑动窗口：带宽、包速率、延迟
- PacketRecord 集合：地址、协议、大小、标志位、载荷预览

随机源由调用方注入（numpy.random.Generator），测试时可固定种子。
"""

from collections import deque
from datetime import datetime, timedelta
from typing import Iterable, Optional, Tuple

import numpy as np

from .config import DashboardConfig
from .types import PacketRecord, TrafficSample


DEFAULT_CONFIG = DashboardConfig()


def _pick(rng: np.random.Generator, pool: Tuple[str, ...]) -> str:
    return pool[int(rng.integers(len(pool)))]


def draw_sample(
    rng: np.random.Generator,
    timestamp: datetime,
    config: DashboardConfig = DEFAULT_CONFIG,
) -> TrafficSample:
    """按配置的均匀分布抽取一个采样点。"""
    return TrafficSample(
        timestamp=timestamp,
        label=timestamp.strftime("%H:%M"),
        bandwidth=float(rng.uniform(*config.bandwidth_range)),
        packet_rate=float(rng.uniform(*config.packet_rate_range)),
        latency=float(rng.uniform(*config.latency_range)),
    )


def generate_initial_window(
    rng: np.random.Generator,
    config: DashboardConfig = DEFAULT_CONFIG,
    now: Optional[datetime] = None,
) -> Tuple[TrafficSample, ...]:
    """
    生成启动时的初始窗口。

    第 i 个点（i 从 window_size-1 递减到 0）的时间为 now 之前 i 个间隔，
    因此输出按时间升序排列，最后一个点就是 now。
    """
    now = now or datetime.now()
    spacing = timedelta(seconds=config.sample_spacing_seconds)
    return tuple(
        draw_sample(rng, now - i * spacing, config)
        for i in range(config.window_size - 1, -1, -1)
    )


def tick_window(
    window: Iterable[TrafficSample],
    rng: np.random.Generator,
    config: DashboardConfig = DEFAULT_CONFIG,
    now: Optional[datetime] = None,
) -> Tuple[TrafficSample, ...]:
    """
    滑动窗口前进一步：丢弃最旧的点，追加一个时间为 now 的新点。

    窗口长度保持不变；空窗口得到只含一个点的窗口。
    """
    samples = list(window)
    buffer = deque(samples, maxlen=max(len(samples), 1))
    buffer.append(draw_sample(rng, now or datetime.now(), config))
    return tuple(buffer)


def generate_packet_set(
    rng: np.random.Generator,
    n: Optional[int] = None,
    config: DashboardConfig = DEFAULT_CONFIG,
    now: Optional[datetime] = None,
) -> Tuple[PacketRecord, ...]:
    """
    生成 n 条合成数据包记录（默认取 config.packet_count）。

    - 时间戳在最近 packet_history_seconds 内均匀分布
    - 源/目的地址从地址池中独立有放回抽取
    - 标志位为 ("SYN", "ACK") 的随机长度前缀（0~2 个）
    - 按真实时间从新到旧排序
    """
    now = now or datetime.now()
    count = config.packet_count if n is None else n

    packets = []
    for i in range(count):
        offset = float(rng.uniform(0, config.packet_history_seconds))
        protocol = _pick(rng, config.protocols)
        packets.append(PacketRecord(
            id=f"pkt_{i}",
            timestamp=now - timedelta(seconds=offset),
            source_address=_pick(rng, config.addresses),
            destination_address=_pick(rng, config.addresses),
            protocol=protocol,
            size_bytes=int(rng.integers(*config.size_range)),
            flags=tuple(config.flags[:int(rng.integers(0, len(config.flags) + 1))]),
            payload_preview=config.payloads.get(protocol, ""),
        ))

    return tuple(sorted(packets, key=lambda p: p.timestamp, reverse=True))


def step_network_load(
    load: float,
    rng: np.random.Generator,
    config: DashboardConfig = DEFAULT_CONFIG,
) -> float:
    """负载仪表的有界随机游走：clamp(load + U(-step, step), 0, 100)。"""
    change = float(rng.uniform(-config.load_step, config.load_step))
    return max(0.0, min(100.0, load + change))
