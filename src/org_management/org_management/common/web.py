from __future__ import annotations

from functools import wraps

from flask import current_app, flash, g, redirect, render_template, session, url_for

from ..authorization.actor import Actor


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            flash("Silakan login terlebih dahulu", "warning")
            return redirect(url_for("login"))
        return view(*args, **kwargs)

    return wrapper


def current_user_view() -> dict:
    """Session data for templates (navbar, 403 page)."""
    return {
        "user_id": session.get("user_id"),
        "username": session.get("username"),
        "full_name": session.get("full_name"),
        "role_level": session.get("role_level"),
        "role_name": session.get("role_name"),
        "profile_photo": session.get("profile_photo"),
    }


def current_actor() -> Actor:
    """Resolve the Actor of this request once; cached on ``flask.g``."""
    actor = g.get("actor")
    if actor is None:
        container = current_app.extensions["org_container"]
        actor = container.actor_service.resolve(session["user_id"], session["role_level"])
        g.actor = actor
    return actor


def render_forbidden(reason: str):
    return render_template("403.html", reason=reason), 403


def form_value(form, name: str) -> str:
    return (form.get(name) or "").strip()
