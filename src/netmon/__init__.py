"""
网络监控仪表盘核心包（合成数据，不做真实抓包）。

模块划分：
- netmon.config    : 仪表盘配置（Config）
- netmon.source    : 合成遥测数据生成（Source）
- netmon.filters   : 数据包过滤与查询（Filter）
- netmon.features  : 指标卡片、协议统计、地理分布（Feature）
- netmon.detector  : 阈值告警规则（Detection）
- netmon.sink      : 告警输出（Sink）
- netmon.controller: 仪表盘状态与定时 tick（Controller）
- netmon.export    : CSV / JSON 导出（Export）
"""

__version__ = "0.1.0"
