# Overview: Read-only API routes for branch and unit aggregate history.

from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..services import history_service
from ..services.history_service import (
    BranchNotFoundError,
    HistoryValidationError,
    UnitNotFoundError,
)


history_bp = Blueprint("history", __name__, url_prefix="/api")


def _limit_arg():
    raw = request.args.get("limit")
    if raw is None:
        return current_app.config["HISTORY_DEFAULT_LIMIT"]
    try:
        return int(raw)
    except ValueError:
        raise HistoryValidationError("limit must be an integer")


@history_bp.get("/branches/<branch_id>/aggregates")
def branch_history_route(branch_id: str):
    try:
        history = history_service.branch_aggregate_history(
            db.session, branch_id, limit=_limit_arg()
        )
        return jsonify(history.to_dict()), 200

    except HistoryValidationError as e:
        return jsonify({"error": str(e)}), 400
    except BranchNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to load aggregate history for branch %s", branch_id)
        return jsonify({"error": "Internal server error"}), 500


@history_bp.get("/units/<device_id>/aggregates")
def unit_history_route(device_id: str):
    include_harvested = request.args.get("include_harvested", "true").lower() == "true"

    try:
        history = history_service.unit_aggregate_history(
            db.session,
            device_id,
            limit=_limit_arg(),
            include_harvested=include_harvested,
        )
        return jsonify(history), 200

    except HistoryValidationError as e:
        return jsonify({"error": str(e)}), 400
    except UnitNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to load aggregate history for unit %s", device_id)
        return jsonify({"error": "Internal server error"}), 500
