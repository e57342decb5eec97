"""
Sink 模块：负责告警的输出。

当前实现：
- 控制台打印
- 日志文件写入（JSON 行）
Streamlit 界面直接从仪表盘状态中读取告警进行展示。
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict
import json
import pathlib


@dataclass
class Alert:
    id: str
    timestamp: datetime
    level: str  # warning / error / info
    alert_type: str
    message: str
    score: float
    detail: Dict[str, Any] = field(default_factory=dict)


def alert_to_dict(alert: Alert) -> Dict[str, Any]:
    return {
        "id": alert.id,
        "timestamp": alert.timestamp.isoformat(),
        "level": alert.level,
        "alert_type": alert.alert_type,
        "message": alert.message,
        "score": alert.score,
        "detail": alert.detail,
    }


def log_alert(alert: Alert, log_path: str = "data/alerts.log") -> None:
    """将告警写入日志文件（JSON 行）。"""
    pathlib.Path(log_path).parent.mkdir(parents=True, exist_ok=True)

    line = json.dumps(alert_to_dict(alert), ensure_ascii=False)
    with open(log_path, "a", encoding="utf-8") as f:
        f.write(line + "\n")


def print_alert(alert: Alert) -> None:
    """在控制台打印简要告警信息。"""
    print(
        f"[{alert.timestamp.isoformat()}] "
        f"[{alert.level.upper()}] "
        f"[{alert.alert_type}] "
        f"{alert.message}, score={alert.score:.3f}"
    )
