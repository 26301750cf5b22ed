from __future__ import annotations

from flask import Flask, jsonify

from dashboard.config import ensure_dirs
from dashboard.routes import register_blueprints
from modules.catalogue_store import get_db_runtime_info


def create_app(config: dict | None = None) -> Flask:
    app = Flask(__name__)
    if config:
        app.config.update(config)
    ensure_dirs()

    register_blueprints(app)

    @app.after_request
    def add_cors_headers(response):
        response.headers.setdefault("Access-Control-Allow-Origin", "*")
        response.headers.setdefault(
            "Access-Control-Allow-Headers", "Content-Type, Authorization, X-API-Token, X-User-Id"
        )
        response.headers.setdefault("Access-Control-Allow-Methods", "GET,POST,PUT,DELETE,OPTIONS")
        return response

    @app.route("/health")
    def health():
        db = get_db_runtime_info()
        return jsonify({"status": "ok", "database": db["dialect"]})

    return app


# Module-level app instance for gunicorn (e.g. `gunicorn dashboard:app`)
app = create_app()
