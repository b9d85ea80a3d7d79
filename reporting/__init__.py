"""NetProbe Reporting — Public API

Renders scan results as text, JSON and CSV, and writes report files.

Usage:
    from reporting import ReportGenerator, render
    print(render(host_result, "text"))
    path = ReportGenerator(output_dir="reports").generate(network_result, fmt="csv")
"""
from reporting.report_generator import (
    ReportGenerator, CSV_HEADER, render, render_text, render_network_text,
    render_ping, render_discovery,
    host_to_dict, network_to_dict, to_dict, to_json, to_csv,
)

__all__ = [
    "ReportGenerator", "CSV_HEADER", "render", "render_text",
    "render_network_text", "render_ping", "render_discovery",
    "host_to_dict", "network_to_dict", "to_dict", "to_json", "to_csv",
]
