"""NetProbe Dashboard — Public API

Flask endpoint exposing health and scan invocation over HTTP.

Usage:
    from dashboard.app import create_app, run_dashboard
"""
from dashboard.app import create_app, run_dashboard

__all__ = [
    "create_app",
    "run_dashboard",
]
