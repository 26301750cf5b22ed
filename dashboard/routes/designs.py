from __future__ import annotations

from flask import Blueprint, jsonify, request

from dashboard.auth import current_user
from modules.catalogue_store import (
    NotFoundError,
    create_design,
    delete_design,
    get_design,
    list_designs,
    list_fabrics,
    update_design,
)

bp = Blueprint("designs_routes", __name__)


@bp.get("/api/designs")
def api_designs_list():
    user, error = current_user()
    if error:
        return error

    args = request.args
    try:
        result = list_designs(
            user["id"],
            fabric=args.get("fabric"),
            catalogue=args.get("catalogue"),
            min_price=args.get("minPrice"),
            max_price=args.get("maxPrice"),
            search=args.get("search"),
            sort_by=args.get("sortBy") or "newest",
            page=int(args.get("page") or 1),
            limit=int(args.get("limit") or 50),
        )
    except ValueError as e:
        return jsonify({"error": f"Invalid filter: {e}"}), 400
    return jsonify(result)


@bp.get("/api/designs/meta/fabrics")
def api_designs_fabrics():
    user, error = current_user()
    if error:
        return error
    return jsonify({"fabrics": list_fabrics(user["id"])})


@bp.get("/api/designs/<design_id>")
def api_design_detail(design_id: str):
    user, error = current_user()
    if error:
        return error

    design = get_design(user["id"], design_id)
    if not design:
        return jsonify({"error": "Design not found"}), 404
    return jsonify(design)


@bp.post("/api/designs")
def api_design_create():
    user, error = current_user()
    if error:
        return error

    data = request.get_json(silent=True) or {}
    missing = [k for k in ("image", "fabric", "wholesalePrice", "retailPrice") if data.get(k) in (None, "")]
    if missing:
        return jsonify({"error": f"Missing fields: {', '.join(missing)}"}), 400

    try:
        design = create_design(
            user["id"],
            image=data["image"],
            wholesale_price=data["wholesalePrice"],
            retail_price=data["retailPrice"],
            fabric=data["fabric"],
            name=data.get("name"),
            description=data.get("description"),
            catalogue_id=data.get("catalogueId"),
        )
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(design), 201


@bp.put("/api/designs/<design_id>")
def api_design_update(design_id: str):
    user, error = current_user()
    if error:
        return error

    data = request.get_json(silent=True) or {}
    try:
        design = update_design(
            user["id"],
            design_id,
            name=data.get("name"),
            fabric=data.get("fabric"),
            description=data.get("description"),
            image=data.get("image"),
            catalogue_id=data.get("catalogueId"),
            wholesale_price=data.get("wholesalePrice"),
            retail_price=data.get("retailPrice"),
        )
    except NotFoundError:
        return jsonify({"error": "Design not found"}), 404
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(design)


@bp.delete("/api/designs/<design_id>")
def api_design_delete(design_id: str):
    user, error = current_user()
    if error:
        return error

    try:
        delete_design(user["id"], design_id)
    except NotFoundError:
        return jsonify({"error": "Design not found"}), 404
    return jsonify({"message": "Design deleted successfully"})
