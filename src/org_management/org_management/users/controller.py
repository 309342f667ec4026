from __future__ import annotations

import logging
from datetime import timedelta

from flask import Flask, flash, redirect, render_template, request, session, url_for

from ..authorization.policy import require_admin
from ..common.web import current_actor, form_value, login_required, render_forbidden
from ..container import Container
from ..core.constants import DEFAULT_SESSION_DAYS
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def _user_form(form) -> dict:
    return {
        "username": form_value(form, "username"),
        "email": form_value(form, "email"),
        "full_name": form_value(form, "full_name"),
        "role_id": form_value(form, "role_id"),
        "phone": form_value(form, "phone"),
        "address": form_value(form, "address"),
        "is_active": form.get("is_active") in ("1", "on", "true"),
    }


def register(app: Flask, container: Container) -> None:
    @app.route("/", endpoint="index")
    def index():
        if "user_id" in session:
            return redirect(url_for("dashboard"))
        return redirect(url_for("login"))

    @app.route("/login", methods=["GET", "POST"], endpoint="login")
    def login():
        if "user_id" in session:
            return redirect(url_for("dashboard"))

        username = ""
        if request.method == "POST":
            username = form_value(request.form, "username")
            password = request.form.get("password", "")
            remember = request.form.get("remember_me")

            try:
                s_user = container.auth_service.authenticate(username, password)

                session.clear()
                session.permanent = bool(remember)
                app.permanent_session_lifetime = timedelta(days=DEFAULT_SESSION_DAYS)

                session["user_id"] = s_user.user_id
                session["username"] = s_user.username
                session["full_name"] = s_user.full_name
                session["role_level"] = int(s_user.role_level)
                session["role_name"] = s_user.role_name
                session["profile_photo"] = s_user.profile_photo

                logger.info("login ok: %s", s_user.username)
                flash(f"Selamat datang, {s_user.full_name}!", "success")
                return redirect(url_for("dashboard"))
            except AuthenticationError as e:
                logger.info("login failed for %r: %s", username, e)
                flash(str(e), "danger")
            except Exception:
                logger.exception("login error")
                flash("Terjadi kesalahan saat login", "danger")

        return render_template("login.html", username=username)

    @app.route("/logout", endpoint="logout")
    def logout():
        session.clear()
        flash("Anda telah logout", "info")
        return redirect(url_for("login"))

    # --- user management (Admin) ----------------------------------------

    @app.route("/users", endpoint="users_index")
    @login_required
    def users_index():
        try:
            users = container.user_service.list_users(current_actor())
        except AuthorizationError as e:
            return render_forbidden(str(e))
        return render_template("users/index.html", users=users, active_page="users")

    @app.route("/users/create", methods=["GET", "POST"], endpoint="users_create")
    @login_required
    def users_create():
        actor = current_actor()
        decision = require_admin(actor)
        if not decision:
            return render_forbidden(decision.reason)

        form = _user_form(request.form) if request.method == "POST" else {"is_active": True}
        if request.method == "POST":
            try:
                container.user_service.create_user(actor, password=request.form.get("password", ""), **form)
                flash("User berhasil ditambahkan", "success")
                return redirect(url_for("users_index"))
            except AuthorizationError as e:
                return render_forbidden(str(e))
            except (ValidationError, ConflictError) as e:
                flash(str(e), "danger")
            except Exception:
                logger.exception("create user failed")
                flash("Terjadi kesalahan", "danger")

        return render_template(
            "users/form.html",
            form=form,
            roles=container.user_service.list_roles(),
            mode="create",
            active_page="users",
        )

    @app.route("/users/<int:user_id>/edit", methods=["GET", "POST"], endpoint="users_edit")
    @login_required
    def users_edit(user_id: int):
        actor = current_actor()
        decision = require_admin(actor)
        if not decision:
            return render_forbidden(decision.reason)

        try:
            user = container.user_service.get_user(user_id)
        except NotFoundError as e:
            flash(str(e), "warning")
            return redirect(url_for("users_index"))

        if request.method == "POST":
            form = _user_form(request.form)
            try:
                container.user_service.update_user(
                    actor,
                    user_id,
                    password=request.form.get("password") or None,
                    confirm_password=request.form.get("confirm_password") or None,
                    **form,
                )
                flash("User berhasil diperbarui", "success")
                return redirect(url_for("users_index"))
            except AuthorizationError as e:
                return render_forbidden(str(e))
            except NotFoundError as e:
                flash(str(e), "warning")
                return redirect(url_for("users_index"))
            except (ValidationError, ConflictError) as e:
                flash(str(e), "danger")
            except Exception:
                logger.exception("update user %s failed", user_id)
                flash("Terjadi kesalahan", "danger")
        else:
            form = {
                "username": user.username,
                "email": user.email,
                "full_name": user.full_name,
                "role_id": str(user.role_id),
                "phone": user.phone or "",
                "address": user.address or "",
                "is_active": user.is_active,
            }

        return render_template(
            "users/form.html",
            form=form,
            user=user,
            roles=container.user_service.list_roles(),
            mode="edit",
            active_page="users",
        )

    @app.route("/users/<int:user_id>/delete", methods=["POST"], endpoint="users_delete")
    @login_required
    def users_delete(user_id: int):
        try:
            container.user_service.delete_user(current_actor(), user_id)
            flash("User berhasil dihapus", "success")
        except AuthorizationError as e:
            return render_forbidden(str(e))
        except (NotFoundError, ConflictError) as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("delete user %s failed", user_id)
            flash("Terjadi kesalahan", "danger")
        return redirect(url_for("users_index"))

    # --- own profile -----------------------------------------------------

    @app.route("/profile", endpoint="profile")
    @login_required
    def profile():
        try:
            user = container.user_service.get_user(session["user_id"])
        except NotFoundError:
            session.clear()
            return redirect(url_for("login"))
        units = container.unit_service.my_units(current_actor())
        department = container.department_service.get_user_department_category(user.user_id)
        return render_template(
            "profile/index.html",
            user=user,
            units=units,
            department=department,
            active_page="profile",
        )

    @app.route("/profile/edit", methods=["GET", "POST"], endpoint="profile_edit")
    @login_required
    def profile_edit():
        user = container.user_service.get_user(session["user_id"])
        form = {
            "full_name": user.full_name,
            "email": user.email,
            "phone": user.phone or "",
            "address": user.address or "",
        }
        if request.method == "POST":
            form = {k: form_value(request.form, k) for k in form}
            try:
                container.user_service.update_profile(user.user_id, **form)
                session["full_name"] = form["full_name"]
                flash("Profil berhasil diperbarui", "success")
                return redirect(url_for("profile"))
            except (ValidationError, ConflictError) as e:
                flash(str(e), "danger")
            except Exception:
                logger.exception("update profile failed")
                flash("Terjadi kesalahan", "danger")

        return render_template("profile/edit.html", form=form, active_page="profile")

    @app.route("/profile/change-password", methods=["GET", "POST"], endpoint="profile_change_password")
    @login_required
    def profile_change_password():
        if request.method == "POST":
            try:
                container.user_service.change_password(
                    session["user_id"],
                    current_password=request.form.get("current_password", ""),
                    new_password=request.form.get("new_password", ""),
                    confirm_password=request.form.get("confirm_password", ""),
                )
                flash("Password berhasil diubah", "success")
                return redirect(url_for("profile"))
            except ValidationError as e:
                flash(str(e), "danger")
            except Exception:
                logger.exception("change password failed")
                flash("Terjadi kesalahan", "danger")

        return render_template("profile/change_password.html", active_page="profile")

    @app.route("/profile/upload-photo", methods=["POST"], endpoint="profile_upload_photo")
    @login_required
    def profile_upload_photo():
        try:
            filename = container.user_service.update_profile_photo(
                session["user_id"],
                request.files.get("photo"),
                app.config["UPLOAD_FOLDER"],
            )
            session["profile_photo"] = filename
            flash("Foto profil berhasil diperbarui", "success")
        except ValidationError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("upload photo failed")
            flash("Terjadi kesalahan saat mengunggah foto", "danger")
        return redirect(url_for("profile"))
