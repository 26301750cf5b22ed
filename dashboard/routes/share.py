from __future__ import annotations

import io
import logging
import time
import uuid
from pathlib import Path

from flask import Blueprint, current_app, jsonify, request, send_file, send_from_directory

from dashboard.auth import current_user
from dashboard.config import EXPORT_DIR, MAX_SHARE_DESIGNS
from modules.catalogue_store import get_designs, get_group
from modules.errors import CatalogueShareError
from modules.export_negotiator import ExportNegotiator
from modules.image_compositor import compose
from modules.models import Design, Group, LabelOptions, ShareTarget
from modules.platforms import LocalPlatform
from modules.share_session import ShareSession

logger = logging.getLogger(__name__)

bp = Blueprint("share_routes", __name__)


def _load_selection(user: dict, data: dict):
    """Resolve designIds to Design objects in the order given.

    Returns (designs, None) or (None, error_response).
    """
    design_ids = data.get("designIds") or []
    if not isinstance(design_ids, list) or not design_ids:
        return None, (jsonify({"error": "Select at least one design to share"}), 400)
    if len(design_ids) > MAX_SHARE_DESIGNS:
        return None, (jsonify({"error": f"Select at most {MAX_SHARE_DESIGNS} designs"}), 400)

    rows = get_designs(user["id"], [str(i) for i in design_ids])
    found = {r["id"] for r in rows}
    missing = [str(i) for i in design_ids if str(i) not in found]
    if missing:
        return None, (jsonify({"error": f"Designs not found: {', '.join(missing)}"}), 404)
    return [Design.from_row(r) for r in rows], None


def _firm_name(user: dict, data: dict) -> str | None:
    return data.get("firmName") or user.get("firm_name")


@bp.get("/api/me")
def api_me():
    user, error = current_user()
    if error:
        return error
    return jsonify(user)


@bp.post("/api/share/preview")
def api_share_preview():
    """Render the first selected design with the given label options."""
    user, error = current_user()
    if error:
        return error

    data = request.get_json(silent=True) or {}
    designs, error = _load_selection(user, data)
    if error:
        return error

    options = LabelOptions.from_mapping(data.get("options"))
    try:
        artifact = compose(designs[0], options, _firm_name(user, data))
    except CatalogueShareError as e:
        logger.warning(f"Preview failed for design {designs[0].id}: {e}")
        return jsonify({"error": str(e)}), 422

    return send_file(
        io.BytesIO(artifact.data),
        mimetype=artifact.content_type,
        download_name=f"preview_{designs[0].id}.{artifact.extension}",
    )


@bp.post("/api/share/export")
def api_share_export():
    """
    Render the selection and save it for download.

    The server has no share sheet, so exports always end on the
    download-and-link channel: files land under /exports/<batch>/ and the
    response carries the deep link(s) for the client to open.
    """
    user, error = current_user()
    if error:
        return error

    data = request.get_json(silent=True) or {}
    designs, error = _load_selection(user, data)
    if error:
        return error

    target = ShareTarget.broadcast()
    group_id = data.get("groupId")
    if group_id:
        group_row = get_group(user["id"], str(group_id))
        if group_row is None:
            return jsonify({"error": "Group not found or unauthorized"}), 404
        target = ShareTarget.for_group(Group.from_row(group_row))

    batch = uuid.uuid4().hex
    export_dir = Path(current_app.config.get("EXPORT_DIR", EXPORT_DIR))
    platform = LocalPlatform(export_dir / batch, open_browser=False)
    negotiator = ExportNegotiator(platform, sleep=current_app.config.get("SHARE_SLEEP", time.sleep))
    session = ShareSession(
        designs,
        negotiator,
        options=LabelOptions.from_mapping(data.get("options")),
        firm_name=_firm_name(user, data),
        target=target,
    )

    with session:
        result = session.prepare_export()
        if result is None:
            return jsonify({"error": session.alert or "Share cancelled"}), 400

        return jsonify(
            {
                "status": result.status,
                "channel": result.channel,
                "caption": result.caption,
                "files": [f"/exports/{batch}/{p.name}" for p in result.saved_files],
                "links": result.links,
            }
        )


@bp.get("/exports/<path:filename>")
def serve_export(filename: str):
    return send_from_directory(str(current_app.config.get("EXPORT_DIR", EXPORT_DIR)), filename)
