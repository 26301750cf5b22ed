from __future__ import annotations

from flask import Blueprint, jsonify, request

from dashboard.auth import current_user
from modules.catalogue_store import (
    NotFoundError,
    create_catalogue,
    delete_catalogue,
    get_catalogue,
    list_catalogues,
    update_catalogue,
)

bp = Blueprint("catalogues_routes", __name__)


@bp.get("/api/catalogues")
def api_catalogues_list():
    user, error = current_user()
    if error:
        return error
    return jsonify({"catalogues": list_catalogues(user["id"])})


@bp.get("/api/catalogues/<catalogue_id>")
def api_catalogue_detail(catalogue_id: str):
    user, error = current_user()
    if error:
        return error

    catalogue = get_catalogue(user["id"], catalogue_id)
    if not catalogue:
        return jsonify({"error": "Catalogue not found"}), 404
    return jsonify(catalogue)


@bp.post("/api/catalogues")
def api_catalogue_create():
    user, error = current_user()
    if error:
        return error

    data = request.get_json(silent=True) or {}
    try:
        catalogue = create_catalogue(user["id"], data.get("name", ""))
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(catalogue), 201


@bp.put("/api/catalogues/<catalogue_id>")
def api_catalogue_update(catalogue_id: str):
    user, error = current_user()
    if error:
        return error

    data = request.get_json(silent=True) or {}
    try:
        catalogue = update_catalogue(user["id"], catalogue_id, data.get("name", ""))
    except NotFoundError:
        return jsonify({"error": "Catalogue not found"}), 404
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(catalogue)


@bp.delete("/api/catalogues/<catalogue_id>")
def api_catalogue_delete(catalogue_id: str):
    user, error = current_user()
    if error:
        return error

    try:
        delete_catalogue(user["id"], catalogue_id)
    except NotFoundError:
        return jsonify({"error": "Catalogue not found"}), 404
    return jsonify({"message": "Catalogue deleted successfully"})
