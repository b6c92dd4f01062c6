# Overview: Flask API routes for unit harvest settlement; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..services import harvest_service
from ..services.harvest_service import (
    HarvestConflictError,
    HarvestValidationError,
    NothingToHarvestError,
)
from ..decorators import require_harvest_key


harvest_bp = Blueprint("harvest", __name__, url_prefix="/api/unit-harvest")


@harvest_bp.post("")
@require_harvest_key
def settle_harvest_route():
    """
    Settle a harvest: mark every unharvested daily aggregate of the unit as
    harvested and return their sum.

    Body: {"deviceId": str, "key": str}
    """
    data = request.get_json(silent=True) or {}
    device_id = data.get("deviceId")

    if not device_id:
        return jsonify({"error": "Device ID is required"}), 400

    current_app.logger.info("Harvest request for deviceId: %s", device_id)

    try:
        result = harvest_service.settle_unit_harvest(db.session, device_id)
        return jsonify(result.to_dict()), 200

    except HarvestValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except NothingToHarvestError as e:
        return jsonify({"error": str(e), "details": e.details}), 404
    except HarvestConflictError as e:
        return jsonify({
            "error": str(e),
            "details": e.details,
            "suggestion": "Another harvest for this unit was in progress; retry to settle anything left",
        }), 409
    except Exception as e:
        current_app.logger.exception("Harvest failed for deviceId %s", device_id)
        return jsonify({
            "error": "Failed to harvest aggregates",
            "details": str(e),
            "suggestion": "No aggregates were marked harvested; check the server logs and retry",
        }), 500


@harvest_bp.post("/preview")
@require_harvest_key
def preview_harvest_route():
    """Totals the unit would settle right now; nothing is written."""
    data = request.get_json(silent=True) or {}
    device_id = data.get("deviceId")

    if not device_id:
        return jsonify({"error": "Device ID is required"}), 400

    try:
        result = harvest_service.preview_unit_harvest(db.session, device_id)
        return jsonify(result.to_dict()), 200

    except HarvestValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except NothingToHarvestError as e:
        return jsonify({"error": str(e), "details": e.details}), 404
    except Exception as e:
        current_app.logger.exception("Harvest preview failed for deviceId %s", device_id)
        return jsonify({
            "error": "Failed to preview harvest",
            "details": str(e),
        }), 500
