from __future__ import annotations

from flask import Flask

from dashboard.routes.catalogues import bp as catalogues_bp
from dashboard.routes.designs import bp as designs_bp
from dashboard.routes.groups import bp as groups_bp
from dashboard.routes.share import bp as share_bp


def register_blueprints(app: Flask) -> None:
    app.register_blueprint(designs_bp)
    app.register_blueprint(catalogues_bp)
    app.register_blueprint(groups_bp)
    app.register_blueprint(share_bp)
