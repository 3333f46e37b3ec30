from datetime import date

from flask import Blueprint, jsonify, request

from errors import ValidationError
from services.container import get_services


daily_tasks_bp = Blueprint("daily_tasks", __name__, url_prefix="/api/daily-tasks")


def _parse_date(raw, name: str):
    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        raise ValidationError(f"{name} must be a date in YYYY-MM-DD format")


def _parse_xp(raw):
    if raw in (None, ""):
        return 0
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError("xpEarned must be an integer")


@daily_tasks_bp.route("/tasks", methods=["GET"])
def list_tasks():
    tasks = get_services().tasks.list_tasks(
        technology=request.args.get("technology"),
        difficulty=request.args.get("difficulty"),
    )
    return jsonify({"success": True, "data": tasks})


@daily_tasks_bp.route("/technologies", methods=["GET"])
def technologies():
    return jsonify({"success": True, "data": get_services().tasks.technologies()})


@daily_tasks_bp.route("/validate-answer", methods=["POST"])
def validate_answer():
    body = request.get_json(silent=True) or {}
    result = get_services().tasks.validate_answer(
        question=body.get("question"),
        answer=body.get("answer"),
        technology=body.get("technology"),
    )
    return jsonify({"success": True, **result})


@daily_tasks_bp.route("/complete", methods=["POST"])
def complete_task():
    body = request.get_json(silent=True) or {}
    user_id = body.get("userId")
    task_id = body.get("taskId")
    if not user_id or not task_id:
        raise ValidationError("User ID and Task ID are required")
    try:
        task_id = int(task_id)
    except (TypeError, ValueError):
        raise ValidationError("taskId must be an integer")

    row, already_completed = get_services().tasks.complete(user_id, task_id, _parse_xp(body.get("xpEarned")))
    if already_completed:
        return jsonify({"success": True, "message": "Task already completed", "alreadyCompleted": True})
    return jsonify(
        {
            "success": True,
            "data": {
                "id": row.id if row is not None else None,
                "xpEarned": row.xp_earned if row is not None else get_services().tasks.default_xp,
            },
        }
    )


@daily_tasks_bp.route("/completed/<string:user_id>", methods=["GET"])
def completed_today(user_id: str):
    return jsonify({"success": True, "data": get_services().tasks.completed_today(user_id)})


@daily_tasks_bp.route("/streak/<string:user_id>", methods=["GET"])
def get_streak(user_id: str):
    return jsonify({"success": True, "data": get_services().streaks.get_streak(user_id)})


@daily_tasks_bp.route("/update-streak", methods=["POST"])
def update_streak():
    body = request.get_json(silent=True) or {}
    user_id = body.get("userId")
    if not user_id:
        raise ValidationError("User ID is required")

    update = get_services().streaks.update_streak(
        user_id,
        activity_type=body.get("activityType"),
        xp_earned=_parse_xp(body.get("xpEarned")),
    )
    return jsonify({"success": True, "data": update.to_dict()})


@daily_tasks_bp.route("/activity-heatmap/<string:user_id>", methods=["GET"])
def activity_heatmap(user_id: str):
    heatmap = get_services().activity.get_heatmap(
        user_id,
        start_date=_parse_date(request.args.get("start"), "start"),
        end_date=_parse_date(request.args.get("end"), "end"),
    )
    return jsonify({"success": True, "data": heatmap})
