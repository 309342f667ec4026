from __future__ import annotations

import logging
import traceback

from flask import Flask, render_template

from .core.exceptions import AuthorizationError

logger = logging.getLogger(__name__)


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(404)
    def not_found(e):
        return render_template("404.html"), 404

    @app.errorhandler(AuthorizationError)
    def forbidden(e):
        return render_template("403.html", reason=str(e)), 403

    @app.errorhandler(500)
    def server_error(e):
        original = getattr(e, "original_exception", None) or e
        logger.error("unhandled error: %s", original, exc_info=original)
        details = None
        if app.config.get("DEBUG"):
            details = "".join(traceback.format_exception(type(original), original, original.__traceback__))
        return render_template("error.html", details=details), 500
