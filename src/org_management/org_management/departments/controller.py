from __future__ import annotations

import logging

from flask import Flask, flash, redirect, render_template, request, url_for

from ..common.ids import normalize_optional_id
from ..common.web import current_actor, login_required, render_forbidden
from ..container import Container
from ..core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from .service import DEPARTMENT_LABELS, parse_department

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    @app.route("/departemen/<category>/anggota", endpoint="departemen_anggota")
    @login_required
    def departemen_anggota(category: str):
        try:
            dept = parse_department(category)
            actor = current_actor()
            members = container.department_service.list_members(actor, dept)
            available = container.department_service.list_available_users(actor, dept)
        except ValidationError as e:
            flash(str(e), "warning")
            return redirect(url_for("dashboard"))
        except AuthorizationError as e:
            return render_forbidden(str(e))

        return render_template(
            "departemen/anggota.html",
            category=dept.value,
            label=DEPARTMENT_LABELS[dept],
            members=members,
            available_users=available,
            active_page=f"departemen_{dept.value}",
        )

    @app.route("/departemen/<category>/anggota/add", methods=["POST"], endpoint="departemen_anggota_add")
    @login_required
    def departemen_anggota_add(category: str):
        try:
            dept = parse_department(category)
        except ValidationError as e:
            flash(str(e), "warning")
            return redirect(url_for("dashboard"))

        try:
            user_id = normalize_optional_id(request.form.get("user_id"))
            if user_id is None:
                raise ValidationError("Pilih user terlebih dahulu")
            member = container.department_service.add_member(dept, user_id, current_actor())
            flash(f"{member.full_name} berhasil ditambahkan ke {DEPARTMENT_LABELS[dept]}", "success")
        except AuthorizationError as e:
            return render_forbidden(str(e))
        except (ValidationError, ConflictError, NotFoundError) as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("add %s member failed", dept.value)
            flash("Terjadi kesalahan", "danger")
        return redirect(url_for("departemen_anggota", category=dept.value))

    @app.route(
        "/departemen/<category>/anggota/<int:user_id>/remove",
        methods=["POST"],
        endpoint="departemen_anggota_remove",
    )
    @login_required
    def departemen_anggota_remove(category: str, user_id: int):
        try:
            dept = parse_department(category)
        except ValidationError as e:
            flash(str(e), "warning")
            return redirect(url_for("dashboard"))

        try:
            container.department_service.remove_member(dept, user_id, current_actor())
            flash("Anggota berhasil dihapus", "success")
        except AuthorizationError as e:
            return render_forbidden(str(e))
        except NotFoundError as e:
            flash(str(e), "warning")
        except Exception:
            logger.exception("remove %s member failed", dept.value)
            flash("Terjadi kesalahan", "danger")
        return redirect(url_for("departemen_anggota", category=dept.value))
