"""
基于 Streamlit 的网络监控仪表盘。

所有数据均为合成数据：
Source（合成遥测）→ Filter → Feature → Detection → Sink / 可视化。
运行：streamlit run src/streamlit_app.py
"""

import os
import time
from dataclasses import asdict

import matplotlib.pyplot as plt
import pandas as pd
import streamlit as st

from netmon.config import load_config
from netmon.controller import (
    TABS,
    DashboardController,
    clear_alerts,
    reset_filters,
    select_packet,
    select_tab,
    toggle_monitoring,
    update_filters,
)
from netmon.export import csv_export, json_export, save_export
from netmon.features import build_metrics, geo_breakdown, packets_frame, protocol_breakdown, window_frame
from netmon.filters import TIME_RANGES


st.set_page_config(
    page_title="Network Monitor",
    layout="wide",
)

TAB_LABELS = {
    "dashboard": "仪表盘",
    "analytics": "流量分析",
    "packets": "数据包分析",
    "filters": "过滤与搜索",
}
TIME_RANGE_LABELS = {
    "1h": "最近 1 小时",
    "24h": "最近 24 小时",
    "7d": "最近 7 天",
}
TREND_DELTA_COLOR = {"up": "normal", "down": "normal", "stable": "off"}
PACKET_TABLE_COLUMNS = ["time", "protocol", "source", "destination", "size", "flags"]

# 初始化会话状态
if "controller" not in st.session_state:
    st.session_state.controller = DashboardController(load_config(os.environ.get("NETMON_CONFIG")))
if "auto_refresh" not in st.session_state:
    st.session_state.auto_refresh = True
if "tab" not in st.session_state:
    st.session_state.tab = st.session_state.controller.state.active_tab
# 过滤表单未渲染时 Streamlit 会清理控件状态，需要从仪表盘状态恢复
if "f_protocol" not in st.session_state:
    _filters = st.session_state.controller.state.filters
    st.session_state.f_protocol = _filters.protocol
    st.session_state.f_source = _filters.source
    st.session_state.f_destination = _filters.destination
    st.session_state.f_time_range = _filters.time_range
    st.session_state.f_search = _filters.payload_search

controller: DashboardController = st.session_state.controller
config = controller.config

# 定时刷新：到周期则执行一次 tick
controller.handle_tick()
state = controller.state


def _on_filter_change():
    controller.dispatch(
        update_filters,
        protocol=st.session_state.f_protocol,
        source=st.session_state.f_source,
        destination=st.session_state.f_destination,
        time_range=st.session_state.f_time_range,
        payload_search=st.session_state.f_search,
    )


def _on_reset_filters():
    controller.dispatch(reset_filters)
    defaults = controller.state.filters
    st.session_state.f_protocol = defaults.protocol
    st.session_state.f_source = defaults.source
    st.session_state.f_destination = defaults.destination
    st.session_state.f_time_range = defaults.time_range
    st.session_state.f_search = defaults.payload_search


def _on_tab_change():
    controller.dispatch(select_tab, tab=st.session_state.tab)


def _on_packet_select():
    controller.dispatch(select_packet, packet_id=st.session_state.selected_packet)


def _packet_label(packet) -> str:
    flags = " ".join(packet.flags)
    return f"{packet.time_label}  {packet.protocol:<5}  {packet.source_address} → {packet.destination_address}  {packet.size_bytes}B  {flags}"


# ---- 标题栏 ----
col_title, col_status, col_clock, col_button = st.columns([4, 1, 1, 1])
with col_title:
    st.title("Network Monitor")
    st.caption("实时网络流量分析（合成数据）")
with col_status:
    st.metric("监控状态", "运行中" if state.monitoring else "已停止")
with col_clock:
    st.metric("时间", state.now.strftime("%H:%M:%S"))
with col_button:
    st.button(
        "停止" if state.monitoring else "开始",
        on_click=controller.dispatch,
        args=(toggle_monitoring,),
        type="primary" if state.monitoring else "secondary",
    )

with st.sidebar:
    st.header("设置")
    st.toggle("自动刷新", key="auto_refresh")
    st.button("重新生成数据包", on_click=controller.regenerate)

    st.header("导出")
    csv_file = csv_export(state.packets, state.now.date())
    json_file = json_export(state, state.now)
    st.download_button("导出 CSV", data=csv_file.content, file_name=csv_file.filename, mime=csv_file.mime)
    st.download_button("导出 JSON", data=json_file.content, file_name=json_file.filename, mime=json_file.mime)
    if st.button(f"保存到 {config.export_dir}"):
        for export in (csv_file, json_file):
            result = save_export(export, config.export_dir)
            if result.ok:
                st.success(f"已保存 `{result.path}`")
            else:
                st.error(result.error)

active_tab = st.radio(
    "视图",
    TABS,
    format_func=TAB_LABELS.get,
    horizontal=True,
    key="tab",
    on_change=_on_tab_change,
    label_visibility="collapsed",
)

visible = controller.visible_packets()
window_df = window_frame(state.window).set_index("timestamp")
protocols = protocol_breakdown(state.packets)

if active_tab == "dashboard":
    # 指标卡片
    for col, metric in zip(st.columns(4), build_metrics(state.window, state.packets)):
        with col:
            st.metric(metric.label, metric.value, metric.change, delta_color=TREND_DELTA_COLOR[metric.trend])

    col_main, col_side = st.columns([2, 1])
    with col_main:
        st.subheader("网络负载")
        st.progress(int(round(state.network_load)), text=f"当前使用率 {state.network_load:.1f}%")

        st.subheader("协议统计")
        for stat in protocols:
            st.progress(
                min(100, int(round(stat.percentage))),
                text=f"{stat.name}：{stat.percentage}% · {stat.packets} 包 · {stat.bytes:,} 字节",
            )

        st.subheader("地理分布")
        geo_df = pd.DataFrame([asdict(g) for g in geo_breakdown(state.packets)])
        if not geo_df.empty:
            geo_df["radius"] = geo_df["packets"] * 20000 + 50000
            st.map(geo_df, latitude="latitude", longitude="longitude", size="radius")
            st.dataframe(geo_df.drop(columns=["radius"]), use_container_width=True, hide_index=True)

    with col_side:
        st.subheader(f"告警（{len(state.alerts)}）")
        if state.alerts:
            st.button("清空告警", on_click=controller.dispatch, args=(clear_alerts,))
            for alert in state.alerts[:20]:
                text = f"{alert.message}  \n`{alert.timestamp.strftime('%H:%M:%S')}` · {alert.alert_type}"
                if alert.level == "error":
                    st.error(text)
                elif alert.level == "warning":
                    st.warning(text)
                else:
                    st.info(text)
        else:
            st.write("当前尚无告警。")

elif active_tab == "analytics":
    col1, col2 = st.columns(2)
    with col1:
        st.markdown("**带宽（Mbps）**")
        st.area_chart(window_df["bandwidth"])
        st.markdown("**包速率（包/秒）**")
        st.area_chart(window_df["packets"])
    with col2:
        st.markdown("**延迟（ms）**")
        st.line_chart(window_df["latency"])
        st.markdown("**协议分布**")
        if protocols:
            protocol_dist = pd.Series(
                [p.percentage for p in protocols],
                index=[p.name for p in protocols],
            )
            fig, ax = plt.subplots(figsize=(5, 5))
            protocol_dist.plot.pie(ax=ax, autopct="%1.1f%%", colors=[p.color for p in protocols])
            ax.set_ylabel("")
            st.pyplot(fig)
            plt.close(fig)
        else:
            st.info("暂无数据包。")

elif active_tab == "packets":
    col_list, col_detail = st.columns([2, 1])
    with col_list:
        st.subheader(f"数据包列表（{len(visible)}）")
        shown = visible[:50]
        ids = [p.id for p in shown]
        by_id = {p.id: p for p in shown}
        if state.selected_packet_id in by_id:
            index = ids.index(state.selected_packet_id)
        else:
            index = None
        st.selectbox(
            "选择数据包",
            ids,
            index=index,
            format_func=lambda pid: _packet_label(by_id[pid]),
            key="selected_packet",
            on_change=_on_packet_select,
            placeholder="选择一个数据包查看详情",
        )
        st.dataframe(packets_frame(shown)[PACKET_TABLE_COLUMNS], use_container_width=True, hide_index=True)

    with col_detail:
        st.subheader("数据包详情")
        packet = controller.state.selected_packet
        if packet is None:
            st.info("选择一个数据包查看详情。")
        else:
            st.write(f"时间：{packet.timestamp.isoformat(sep=' ', timespec='seconds')}")
            st.write(f"协议：**{packet.protocol}**")
            st.write(f"源地址：`{packet.source_address}`")
            st.write(f"目的地址：`{packet.destination_address}`")
            st.write(f"大小：{packet.size_bytes} 字节")
            st.write(f"标志位：{', '.join(packet.flags) or '无'}")
            st.markdown("**载荷预览**")
            st.code(packet.payload_preview)

elif active_tab == "filters":
    col_form, col_results = st.columns([1, 2])
    with col_form:
        st.subheader("过滤条件")
        protocol_options = ["all"] + list(config.protocols)
        st.selectbox(
            "协议",
            protocol_options,
            format_func=lambda v: "全部协议" if v == "all" else v,
            key="f_protocol",
            on_change=_on_filter_change,
        )
        st.text_input("源 IP", placeholder="例如 192.168.1.100", key="f_source", on_change=_on_filter_change)
        st.text_input("目的 IP", placeholder="例如 10.0.0.15", key="f_destination", on_change=_on_filter_change)
        range_options = list(TIME_RANGES)
        st.selectbox(
            "时间范围",
            range_options,
            format_func=TIME_RANGE_LABELS.get,
            key="f_time_range",
            on_change=_on_filter_change,
        )
        st.divider()
        st.text_input("搜索载荷", placeholder="搜索数据包内容……", key="f_search", on_change=_on_filter_change)
        st.button("重置过滤条件", on_click=_on_reset_filters, use_container_width=True)

    with col_results:
        st.subheader(f"搜索结果（{len(visible)} 个数据包）")
        if not visible:
            st.warning("没有符合条件的数据包。")
        else:
            st.dataframe(
                packets_frame(visible)[PACKET_TABLE_COLUMNS + ["payload"]],
                use_container_width=True,
                hide_index=True,
            )

# 定期更新界面
if st.session_state.auto_refresh:
    time.sleep(controller.seconds_until_tick())
    st.rerun()
