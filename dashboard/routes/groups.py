from __future__ import annotations

from flask import Blueprint, jsonify, request

from dashboard.auth import current_user
from modules.catalogue_store import (
    DuplicateMemberError,
    NotFoundError,
    add_member,
    create_group,
    delete_group,
    get_group,
    list_groups,
    remove_member,
    update_group,
)

bp = Blueprint("groups_routes", __name__)


@bp.get("/api/groups")
def api_groups_list():
    user, error = current_user()
    if error:
        return error
    return jsonify({"groups": list_groups(user["id"])})


@bp.get("/api/groups/<group_id>")
def api_group_detail(group_id: str):
    user, error = current_user()
    if error:
        return error

    group = get_group(user["id"], group_id)
    if not group:
        return jsonify({"error": "Group not found or unauthorized"}), 404
    return jsonify(group)


@bp.post("/api/groups")
def api_group_create():
    user, error = current_user()
    if error:
        return error

    data = request.get_json(silent=True) or {}
    members = data.get("members", [])
    if not isinstance(members, list):
        return jsonify({"error": "Members must be an array"}), 400

    try:
        group = create_group(user["id"], data.get("name", ""), members)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(group), 201


@bp.put("/api/groups/<group_id>")
def api_group_update(group_id: str):
    user, error = current_user()
    if error:
        return error

    data = request.get_json(silent=True) or {}
    members = data.get("members")
    if members is not None and not isinstance(members, list):
        return jsonify({"error": "Members must be an array"}), 400

    try:
        group = update_group(user["id"], group_id, name=data.get("name"), members=members)
    except NotFoundError:
        return jsonify({"error": "Group not found or unauthorized"}), 404
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(group)


@bp.delete("/api/groups/<group_id>")
def api_group_delete(group_id: str):
    user, error = current_user()
    if error:
        return error

    try:
        delete_group(user["id"], group_id)
    except NotFoundError:
        return jsonify({"error": "Group not found or unauthorized"}), 404
    return jsonify({"message": "Group deleted successfully"})


@bp.post("/api/groups/<group_id>/members")
def api_group_member_add(group_id: str):
    user, error = current_user()
    if error:
        return error

    data = request.get_json(silent=True) or {}
    try:
        member = add_member(user["id"], group_id, data.get("name", ""), data.get("phoneNumber", ""))
    except NotFoundError:
        return jsonify({"error": "Group not found or unauthorized"}), 404
    except DuplicateMemberError as e:
        return jsonify({"error": str(e)}), 409
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(member), 201


@bp.delete("/api/groups/<group_id>/members/<member_id>")
def api_group_member_remove(group_id: str, member_id: str):
    user, error = current_user()
    if error:
        return error

    try:
        remove_member(user["id"], group_id, member_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"message": "Member removed successfully"})
