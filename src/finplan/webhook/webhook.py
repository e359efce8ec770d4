import functools
from flask import Flask, request, jsonify
from flask_cors import CORS
from finplan.utils.logger import logger
from finplan.utils.error import PlannerError
from finplan.dropdown.cascade import EditEvent
from finplan.settings.preferences import to_boolean
from finplan.services import build_services
from finplan.scheduler.job import scheduler
import finplan.const as const

# Flask app receiving events from the workbook trigger
app = Flask(__name__)

CORS(
    app,
    origins=["*"],
    methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Accept", const.WEBHOOK_SECRET_HEADER],
)


def require_secret(view):
    """Reject requests without the shared secret when one is configured"""

    @functools.wraps(view)
    def wrapper(*args, **kwargs):
        secret = const.WEBHOOK_SECRET
        if secret and request.headers.get(const.WEBHOOK_SECRET_HEADER) != secret:
            logger.warning(f"Rejected request to {request.path}: bad secret")
            return jsonify({"success": False, "message": "Unauthorized"}), 401
        return view(*args, **kwargs)

    return wrapper


def respond(services, status: int = 200, **payload):
    payload.setdefault("success", status < 400)
    payload["notifications"] = services.notifier.drain() if services else []
    return jsonify(payload), status


@app.route("/")
def home():
    return jsonify(
        {
            "message": "finplan is running",
            "scheduler_status": "running" if scheduler.running else "stopped",
            "scheduled_jobs": len(scheduler.get_jobs()),
        }
    )


@app.route("/edit", methods=["POST"])
@require_secret
def edit():
    """Apply the dropdown cascade to an edited range"""
    try:
        event = EditEvent.from_payload(request.get_json(silent=True))
    except PlannerError as e:
        logger.warning(f"Invalid edit event: {e}")
        return jsonify({"success": False, "message": str(e), "notifications": []}), 400

    services = None
    try:
        services = build_services()
        if event.sheet_name != const.TRANSACTIONS_SHEET:
            return respond(services, processed=0)
        processed = services.cascade().handle_edit(event)
        return respond(services, processed=processed)
    except Exception as e:
        # The edit already happened in the workbook; report and move on
        logger.error(f"Error handling edit event: {e}", exc_info=True)
        if services is not None:
            services.errors.handle(e, const.DROPDOWN_ERROR_MSG)
        return respond(services, processed=0, success=False)


@app.route("/dropdowns/refresh", methods=["POST"])
@require_secret
def refresh_dropdowns():
    services = None
    try:
        services = build_services()
        index = services.mapping.refresh()
        if index.is_empty():
            services.notifier.error("Error", "Failed to refresh dropdown cache.")
            return respond(services, 500)
        services.notifier.success("Dropdown cache has been refreshed.")
        return respond(services, types=len(index.type_to_categories))
    except Exception as e:
        logger.error(f"Error refreshing dropdown cache: {e}", exc_info=True)
        return respond(services, 500, message="Failed to refresh dropdown cache.")


@app.route("/preferences", methods=["GET"])
@require_secret
def get_preferences():
    services = None
    try:
        services = build_services()
        return respond(services, preferences=services.preferences.get_all_preferences())
    except Exception as e:
        logger.error(f"Error reading preferences: {e}", exc_info=True)
        return respond(services, 500, message="Failed to retrieve all settings.")


@app.route("/preferences", methods=["POST"])
@require_secret
def set_preference():
    data = request.get_json(silent=True) or {}
    key = data.get("key")
    if not isinstance(key, str) or not key or "value" not in data:
        return jsonify({"success": False, "message": "key and value are required"}), 400

    services = None
    try:
        services = build_services()
        services.preferences.set_value(key, data["value"])
        return respond(services, key=key, value=data["value"])
    except Exception as e:
        logger.error(f"Error setting preference {key}: {e}", exc_info=True)
        return respond(services, 500, message=f"Failed to set setting: {key}")


@app.route("/preferences/toggle_sub_categories", methods=["POST"])
@require_secret
def toggle_sub_categories():
    services = None
    try:
        services = build_services()
        enabled = services.preferences.toggle_show_sub_categories()
        status = "enabled" if enabled else "disabled"
        services.notifier.info("Settings Updated", f"Sub-categories {status} in Overview sheet")
        return respond(services, showSubCategories=enabled)
    except Exception as e:
        logger.error(f"Error toggling sub-categories: {e}", exc_info=True)
        return respond(services, 500, message="Failed to update setting.")


@app.route("/preferences/sub_categories", methods=["POST"])
@require_secret
def set_sub_categories():
    data = request.get_json(silent=True) or {}
    services = None
    try:
        services = build_services()
        enabled = to_boolean(data.get("value"), True)
        services.preferences.set_show_sub_categories(enabled)
        return respond(services, showSubCategories=enabled)
    except Exception as e:
        logger.error(f"Error setting sub-categories: {e}", exc_info=True)
        return respond(services, 500, message="Failed to update setting.")


@app.route("/preferences/reset", methods=["POST"])
@require_secret
def reset_preferences():
    services = None
    try:
        services = build_services()
        services.preferences.reset_all_preferences()
        return respond(services)
    except Exception as e:
        logger.error(f"Error resetting preferences: {e}", exc_info=True)
        return respond(services, 500, message="Failed to reset settings.")


@app.route("/cache/clear", methods=["POST"])
@require_secret
def clear_cache():
    services = None
    try:
        services = build_services()
        services.cache.invalidate_all()
        services.notifier.success("Cache cleared.")
        return respond(services)
    except Exception as e:
        logger.error(f"Error clearing cache: {e}", exc_info=True)
        return respond(services, 500, message="Failed to clear cache.")


@app.route("/report/monthly", methods=["GET"])
@require_secret
def monthly_report():
    offset = request.args.get("offset", default=0, type=int)
    services = None
    try:
        services = build_services()
        summary = services.monthly_report.generate(offset)
        if summary is None:
            return respond(services, 500)
        return respond(services, report=summary.to_dict())
    except Exception as e:
        logger.error(f"Error generating monthly report: {e}", exc_info=True)
        return respond(services, 500, message="Failed to generate monthly spending report")


@app.route("/overview/categories", methods=["GET"])
@require_secret
def overview_categories():
    services = None
    try:
        services = build_services()
        return respond(
            services,
            showSubCategories=services.preferences.get_show_sub_categories(),
            categories=services.overview.get(),
        )
    except Exception as e:
        logger.error(f"Error collecting overview categories: {e}", exc_info=True)
        return respond(services, 500, message="Failed to collect overview categories")
