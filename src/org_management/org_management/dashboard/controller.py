from __future__ import annotations

from flask import Flask, render_template

from ..common.web import current_actor, login_required
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/dashboard", endpoint="dashboard")
    @login_required
    def dashboard():
        actor = current_actor()
        stats = container.dashboard_service.stats_for(actor)
        return render_template("dashboard.html", stats=stats, actor=actor, active_page="dashboard")
