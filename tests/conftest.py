from datetime import datetime, timedelta

import numpy as np
import pytest

from netmon.types import PacketRecord


NOW = datetime(2024, 5, 1, 12, 0, 0)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def make_packet():
    def _make(
        index: int,
        protocol: str = "TCP",
        source: str = "192.168.1.100",
        destination: str = "8.8.8.8",
        payload: str = "HTTP GET /api/data...",
        age_seconds: float = 60.0,
        size: int = 128,
        flags=("SYN",),
    ) -> PacketRecord:
        return PacketRecord(
            id=f"pkt_{index}",
            timestamp=NOW - timedelta(seconds=age_seconds),
            source_address=source,
            destination_address=destination,
            protocol=protocol,
            size_bytes=size,
            flags=flags,
            payload_preview=payload,
        )

    return _make
