# Overview: Trigger endpoint for the daily aggregation job (called by the external scheduler).

from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..services import aggregation_service
from ..services.aggregation_service import AggregationError
from ..decorators import require_cron_secret
from pisonet.time_utils import parse_date_id


aggregates_bp = Blueprint("aggregates", __name__, url_prefix="/api/aggregate")


@aggregates_bp.post("")
@require_cron_secret
def run_aggregation_route():
    """
    Aggregate today's sales (business timezone) into per-branch rows.

    Optional body: {"date": "YYYY-MM-DD"} to re-run or backfill a day.
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({
            "success": False,
            "error": "Request body must be a JSON object",
            "suggestion": "Send {\"date\": \"YYYY-MM-DD\"} or an empty body",
        }), 400

    business_date = None
    if data.get("date"):
        try:
            business_date = parse_date_id(str(data["date"]))
        except ValueError:
            return jsonify({"error": "date must be YYYY-MM-DD"}), 400

    try:
        run = aggregation_service.run_daily_aggregation(
            db.session,
            business_date=business_date,
            utc_offset_minutes=current_app.config["BUSINESS_UTC_OFFSET_MINUTES"],
        )
        return jsonify({"success": True, **run.to_dict()}), 200

    except AggregationError as e:
        return jsonify({
            "success": False,
            "error": str(e),
            "details": e.details,
            "suggestion": "Nothing was written for this date; the run can be retried safely",
        }), 500
