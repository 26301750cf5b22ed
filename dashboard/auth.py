from __future__ import annotations

import os

from flask import jsonify, request

from dashboard.config import USER_HEADER
from modules.catalogue_store import get_user

_DASHBOARD_API_TOKEN = os.getenv("DASHBOARD_API_TOKEN", "").strip()


def require_api_token():
    """
    Protect the API in shared deployments.

    If DASHBOARD_API_TOKEN is empty, the check is disabled (local/dev mode).
    """
    if not _DASHBOARD_API_TOKEN:
        return None

    provided = (
        request.headers.get("X-API-Token")
        or request.headers.get("Authorization", "").removeprefix("Bearer ").strip()
        or (request.args.get("token") or "").strip()
    )

    if provided != _DASHBOARD_API_TOKEN:
        return jsonify({"error": "Unauthorized: missing or invalid token"}), 401
    return None


def current_user():
    """
    Resolve the calling user from the X-User-Id header.

    Returns (user, None) or (None, error_response). Identity is opaque here;
    issuing and verifying credentials happens upstream.
    """
    auth_error = require_api_token()
    if auth_error:
        return None, auth_error

    user_id = (request.headers.get(USER_HEADER) or "").strip()
    if not user_id:
        return None, (jsonify({"error": f"Missing {USER_HEADER} header"}), 401)

    user = get_user(user_id)
    if user is None:
        return None, (jsonify({"error": "Unknown user"}), 401)
    return user, None
