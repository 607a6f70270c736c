"""Local HTTP control routes mirroring the in-game log commands."""

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from nightowl.services import idle_checker
from nightowl.services import shutdown_coordinator


def _state_response(ctx, ok, action):
    ctx.log_action(f"web-{action}", rejection_message=None if ok else "no state change")
    return jsonify({"ok": ok, "state": ctx.state.snapshot()})


def register_control_routes(app, ctx):
    """Register status and sleep/cancel/pause/resume routes."""

    # Route: /status
    @app.route("/status")
    def status():
        """Return a snapshot of the supervisor flags."""
        return jsonify({"ok": True, "state": ctx.state.snapshot()})

    # Route: /sleep
    @app.route("/sleep", methods=["POST"])
    def sleep():
        worker = shutdown_coordinator.request_shutdown(ctx)
        return _state_response(ctx, worker is not None, "sleep")

    # Route: /cancel
    @app.route("/cancel", methods=["POST"])
    def cancel():
        return _state_response(ctx, shutdown_coordinator.cancel_shutdown(ctx), "cancel")

    # Route: /pause
    @app.route("/pause", methods=["POST"])
    def pause():
        return _state_response(ctx, idle_checker.disable(ctx), "pause")

    # Route: /resume
    @app.route("/resume", methods=["POST"])
    def resume():
        return _state_response(ctx, idle_checker.enable(ctx), "resume")


def create_control_app(ctx):
    """Build the Flask app serving the local control API."""
    app = Flask("nightowl")

    @app.errorhandler(Exception)
    def _unhandled_exception_handler(exc):
        if isinstance(exc, HTTPException):
            return jsonify({"ok": False, "error": exc.name, "message": exc.description}), exc.code
        # Log uncaught request exceptions to the supervisor log.
        ctx.log_exception("control_api", exc)
        return jsonify({"ok": False, "error": "internal_error", "message": "Internal server error."}), 500

    register_control_routes(app, ctx)
    return app
