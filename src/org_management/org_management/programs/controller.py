from __future__ import annotations

import logging

from flask import Flask, flash, redirect, render_template, request, url_for

from ..common.ids import normalize_optional_id
from ..common.web import current_actor, form_value, login_required, render_forbidden
from ..container import Container
from ..core.enums import ProgramStatus
from ..core.exceptions import (
    AuthorizationError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from .model import ProgramFilters
from .service import ProgramForm

logger = logging.getLogger(__name__)


def _program_form(form, *, with_status: bool = False) -> ProgramForm:
    return ProgramForm(
        title=form_value(form, "judul"),
        description=form_value(form, "deskripsi"),
        category_id=form_value(form, "kategori_id"),
        unit_id=form_value(form, "bidang_id"),
        start_date=form_value(form, "tanggal_mulai"),
        end_date=form_value(form, "tanggal_selesai"),
        budget=form_value(form, "anggaran"),
        responsible_user_id=form_value(form, "penanggung_jawab_id"),
        status=form_value(form, "status") if with_status else None,
    )


def _filters_from(args) -> ProgramFilters:
    status = (args.get("status") or "").strip()
    try:
        status_value = ProgramStatus(status) if status else None
    except ValueError:
        status_value = None
    try:
        return ProgramFilters(
            category_id=normalize_optional_id(args.get("kategori_id")),
            unit_id=normalize_optional_id(args.get("bidang_id")),
            status=status_value,
            proposer_id=normalize_optional_id(args.get("pengusul_id")),
        )
    except ValidationError:
        return ProgramFilters(status=status_value)


def register(app: Flask, container: Container) -> None:
    def _not_found(e):
        flash(str(e), "warning")
        return redirect(url_for("proker_index"))

    @app.route("/proker", endpoint="proker_index")
    @login_required
    def proker_index():
        actor = current_actor()
        filters = _filters_from(request.args)
        programs = container.program_service.list_for_actor(actor, filters)
        return render_template(
            "proker/index.html",
            programs=programs,
            filters=filters,
            categories=container.program_service.list_categories(),
            statuses=list(ProgramStatus),
            active_page="proker",
        )

    @app.route("/proker/create", methods=["GET", "POST"], endpoint="proker_create")
    @login_required
    def proker_create():
        actor = current_actor()
        options = container.program_service.form_options(actor)
        if not options.categories:
            return render_forbidden("Anda tidak memiliki akses untuk membuat program kerja")

        form = None
        if request.method == "POST":
            form = _program_form(request.form)
            try:
                program_id = container.program_service.create(actor, form)
                flash("Program kerja berhasil dibuat", "success")
                return redirect(url_for("proker_detail", program_id=program_id))
            except AuthorizationError as e:
                return render_forbidden(str(e))
            except (ValidationError, ConflictError) as e:
                flash(str(e), "danger")
            except Exception:
                logger.exception("create proker failed")
                flash("Terjadi kesalahan", "danger")

        return render_template(
            "proker/form.html",
            form=form,
            options=options,
            mode="create",
            active_page="proker",
        )

    @app.route("/proker/<int:program_id>", endpoint="proker_detail")
    @login_required
    def proker_detail(program_id: int):
        actor = current_actor()
        try:
            program = container.program_service.get_for_actor(actor, program_id)
            history = container.program_service.history(actor, program_id)
        except AuthorizationError as e:
            return render_forbidden(str(e))
        except NotFoundError as e:
            return _not_found(e)

        return render_template(
            "proker/detail.html",
            program=program,
            history=history,
            actions=container.program_service.allowed_actions(actor, program),
            active_page="proker",
        )

    @app.route("/proker/<int:program_id>/edit", methods=["GET", "POST"], endpoint="proker_edit")
    @login_required
    def proker_edit(program_id: int):
        actor = current_actor()
        try:
            program = container.program_service.get_for_actor(actor, program_id)
        except AuthorizationError as e:
            return render_forbidden(str(e))
        except NotFoundError as e:
            return _not_found(e)

        if not container.program_service.allowed_actions(actor, program)["can_edit"]:
            return render_forbidden("Anda tidak memiliki akses untuk mengubah program kerja ini")

        form = None
        if request.method == "POST":
            form = _program_form(request.form, with_status=True)
            try:
                container.program_service.update(actor, program_id, form)
                flash("Program kerja berhasil diperbarui", "success")
                return redirect(url_for("proker_detail", program_id=program_id))
            except AuthorizationError as e:
                return render_forbidden(str(e))
            except NotFoundError as e:
                return _not_found(e)
            except (ValidationError, ConflictError, InvalidTransitionError) as e:
                flash(str(e), "danger")
            except Exception:
                logger.exception("update proker %s failed", program_id)
                flash("Terjadi kesalahan", "danger")

        return render_template(
            "proker/form.html",
            form=form,
            program=program,
            options=container.program_service.form_options(actor),
            statuses=list(ProgramStatus),
            mode="edit",
            active_page="proker",
        )

    @app.route("/proker/<int:program_id>/delete", methods=["POST"], endpoint="proker_delete")
    @login_required
    def proker_delete(program_id: int):
        try:
            container.program_service.delete(current_actor(), program_id)
            flash("Program kerja berhasil dihapus", "success")
        except AuthorizationError as e:
            return render_forbidden(str(e))
        except NotFoundError as e:
            return _not_found(e)
        except Exception:
            logger.exception("delete proker %s failed", program_id)
            flash("Terjadi kesalahan", "danger")
        return redirect(url_for("proker_index"))

    @app.route("/proker/<int:program_id>/submit", methods=["POST"], endpoint="proker_submit")
    @login_required
    def proker_submit(program_id: int):
        try:
            container.program_service.submit(current_actor(), program_id)
            flash("Program kerja berhasil diajukan", "success")
        except AuthorizationError as e:
            return render_forbidden(str(e))
        except NotFoundError as e:
            return _not_found(e)
        except InvalidTransitionError as e:
            flash(str(e), "warning")
        except Exception:
            logger.exception("submit proker %s failed", program_id)
            flash("Terjadi kesalahan", "danger")
        return redirect(url_for("proker_detail", program_id=program_id))

    @app.route("/proker/<int:program_id>/approve", methods=["POST"], endpoint="proker_approve")
    @login_required
    def proker_approve(program_id: int):
        try:
            program = container.program_service.decide(
                current_actor(),
                program_id,
                form_value(request.form, "decision") or "approve",
                request.form.get("catatan"),
            )
            flash(f"Program kerja {program.status.label.lower()}", "success")
        except AuthorizationError as e:
            return render_forbidden(str(e))
        except NotFoundError as e:
            return _not_found(e)
        except (ValidationError, InvalidTransitionError) as e:
            flash(str(e), "warning")
        except Exception:
            logger.exception("approve proker %s failed", program_id)
            flash("Terjadi kesalahan", "danger")
        return redirect(url_for("proker_detail", program_id=program_id))
