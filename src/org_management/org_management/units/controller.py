from __future__ import annotations

import logging

from flask import Flask, flash, redirect, render_template, request, url_for

from ..authorization.policy import require_admin
from ..common.ids import normalize_optional_id
from ..common.web import current_actor, form_value, login_required, render_forbidden
from ..container import Container
from ..core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    def _unit_form(form) -> dict:
        return {
            "name": form_value(form, "nama_bidang"),
            "description": form_value(form, "deskripsi"),
            "chair_user_id": normalize_optional_id(form.get("ketua_bidang_id")),
        }

    @app.route("/bidang", endpoint="bidang_index")
    @login_required
    def bidang_index():
        actor = current_actor()
        try:
            units = container.unit_service.list_units(actor)
        except AuthorizationError as e:
            return render_forbidden(str(e))
        return render_template(
            "bidang/index.html",
            units=units,
            can_edit=bool(require_admin(actor)),
            active_page="bidang",
        )

    @app.route("/bidang/create", methods=["GET", "POST"], endpoint="bidang_create")
    @login_required
    def bidang_create():
        actor = current_actor()
        decision = require_admin(actor)
        if not decision:
            return render_forbidden(decision.reason)

        form = {}
        if request.method == "POST":
            try:
                form = _unit_form(request.form)
                container.unit_service.create_unit(actor, **form)
                flash("Bidang berhasil ditambahkan", "success")
                return redirect(url_for("bidang_index"))
            except AuthorizationError as e:
                return render_forbidden(str(e))
            except ValidationError as e:
                flash(str(e), "danger")
            except Exception:
                logger.exception("create bidang failed")
                flash("Terjadi kesalahan", "danger")

        return render_template(
            "bidang/form.html",
            form=form,
            chairs=container.unit_service.list_chair_candidates(),
            mode="create",
            active_page="bidang",
        )

    @app.route("/bidang/<int:unit_id>/edit", methods=["GET", "POST"], endpoint="bidang_edit")
    @login_required
    def bidang_edit(unit_id: int):
        actor = current_actor()
        decision = require_admin(actor)
        if not decision:
            return render_forbidden(decision.reason)

        try:
            unit = container.unit_service.get_unit(unit_id)
        except NotFoundError as e:
            flash(str(e), "warning")
            return redirect(url_for("bidang_index"))

        form = {"name": unit.name, "description": unit.description or "", "chair_user_id": unit.chair_user_id}
        if request.method == "POST":
            try:
                form = _unit_form(request.form)
                container.unit_service.update_unit(actor, unit_id, **form)
                flash("Bidang berhasil diperbarui", "success")
                return redirect(url_for("bidang_index"))
            except AuthorizationError as e:
                return render_forbidden(str(e))
            except ValidationError as e:
                flash(str(e), "danger")
            except Exception:
                logger.exception("update bidang %s failed", unit_id)
                flash("Terjadi kesalahan", "danger")

        return render_template(
            "bidang/form.html",
            form=form,
            unit=unit,
            chairs=container.unit_service.list_chair_candidates(),
            mode="edit",
            active_page="bidang",
        )

    @app.route("/bidang/<int:unit_id>/delete", methods=["POST"], endpoint="bidang_delete")
    @login_required
    def bidang_delete(unit_id: int):
        try:
            container.unit_service.delete_unit(current_actor(), unit_id)
            flash("Bidang berhasil dihapus", "success")
        except AuthorizationError as e:
            return render_forbidden(str(e))
        except NotFoundError as e:
            flash(str(e), "warning")
        except Exception:
            logger.exception("delete bidang %s failed", unit_id)
            flash("Terjadi kesalahan", "danger")
        return redirect(url_for("bidang_index"))

    @app.route("/bidang/<int:unit_id>/anggota", endpoint="bidang_anggota")
    @login_required
    def bidang_anggota(unit_id: int):
        actor = current_actor()
        try:
            unit = container.unit_service.get_unit(unit_id)
            members = container.unit_service.list_members(actor, unit_id)
            available = container.unit_service.list_available_users(actor, unit_id)
        except AuthorizationError as e:
            return render_forbidden(str(e))
        except NotFoundError as e:
            flash(str(e), "warning")
            return redirect(url_for("bidang_index"))

        return render_template(
            "bidang/anggota.html",
            unit=unit,
            members=members,
            available_users=available,
            active_page="bidang",
        )

    @app.route("/bidang/<int:unit_id>/anggota/add", methods=["POST"], endpoint="bidang_anggota_add")
    @login_required
    def bidang_anggota_add(unit_id: int):
        try:
            user_id = normalize_optional_id(request.form.get("user_id"))
            if user_id is None:
                raise ValidationError("Pilih user terlebih dahulu")
            if container.unit_service.add_member(current_actor(), unit_id, user_id):
                flash("Anggota berhasil ditambahkan", "success")
            else:
                flash("User sudah menjadi anggota bidang ini", "info")
        except AuthorizationError as e:
            return render_forbidden(str(e))
        except NotFoundError as e:
            flash(str(e), "warning")
            return redirect(url_for("bidang_index"))
        except (ValidationError, ConflictError) as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("add member to bidang %s failed", unit_id)
            flash("Terjadi kesalahan", "danger")
        return redirect(url_for("bidang_anggota", unit_id=unit_id))

    @app.route(
        "/bidang/<int:unit_id>/anggota/<int:user_id>/remove",
        methods=["POST"],
        endpoint="bidang_anggota_remove",
    )
    @login_required
    def bidang_anggota_remove(unit_id: int, user_id: int):
        try:
            container.unit_service.remove_member(current_actor(), unit_id, user_id)
            flash("Anggota berhasil dihapus dari bidang", "success")
        except AuthorizationError as e:
            return render_forbidden(str(e))
        except NotFoundError as e:
            flash(str(e), "warning")
        except Exception:
            logger.exception("remove member from bidang %s failed", unit_id)
            flash("Terjadi kesalahan", "danger")
        return redirect(url_for("bidang_anggota", unit_id=unit_id))

    # --- Bidang Saya -----------------------------------------------------

    @app.route("/my-bidang", endpoint="my_bidang")
    @login_required
    def my_bidang():
        units = container.unit_service.my_units(current_actor())
        return render_template("my_bidang/index.html", units=units, active_page="my_bidang")

    @app.route("/my-bidang/<int:unit_id>", endpoint="my_bidang_detail")
    @login_required
    def my_bidang_detail(unit_id: int):
        try:
            unit, members = container.unit_service.view_unit(current_actor(), unit_id)
        except AuthorizationError as e:
            return render_forbidden(str(e))
        except NotFoundError as e:
            flash(str(e), "warning")
            return redirect(url_for("my_bidang"))
        return render_template("my_bidang/detail.html", unit=unit, members=members, active_page="my_bidang")
