from __future__ import annotations

from dataclasses import asdict

from flask import Flask, jsonify, request

from ..container import Container
from ..core.constants import DEFAULT_SUMMARY_MONTHS, DEFAULT_TREND_DAYS
from .common import current_context, int_arg, login_required


def _money(rows: list[dict]) -> list[dict]:
    return [{k: str(v) if k in ("revenue", "tips") else v for k, v in r.items()} for r in rows]


def register(app: Flask, container: Container) -> None:
    @app.get("/api/analytics/dashboard", endpoint="analytics_dashboard")
    @login_required
    def analytics_dashboard():
        current_context().require_admin()
        stats = asdict(container.analytics_service.dashboard())
        for key in ("revenue_today", "revenue_this_month", "tips_this_month"):
            stats[key] = str(stats[key])
        return jsonify(stats)

    @app.get("/api/analytics/revenue", endpoint="analytics_revenue")
    @login_required
    def analytics_revenue():
        current_context().require_admin()
        rows = container.analytics_service.revenue_by_card_type(
            start_date=request.args.get("start") or None,
            end_date=request.args.get("end") or None,
        )
        return jsonify({"card_types": _money(rows)})

    @app.get("/api/analytics/attendance", endpoint="analytics_attendance")
    @login_required
    def analytics_attendance():
        current_context().require_admin()
        days = int_arg("days", DEFAULT_TREND_DAYS)
        return jsonify({"days": container.analytics_service.attendance_trend(days)})

    @app.get("/api/analytics/monthly", endpoint="analytics_monthly")
    @login_required
    def analytics_monthly():
        current_context().require_admin()
        months = int_arg("months", DEFAULT_SUMMARY_MONTHS)
        return jsonify({"months": _money(container.analytics_service.monthly_summary(months))})
