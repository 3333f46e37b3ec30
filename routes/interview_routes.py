from flask import Blueprint, current_app, jsonify, request

from errors import ServiceUnavailableError
from services.container import get_services


interview_bp = Blueprint("interview", __name__, url_prefix="/api/interview")


@interview_bp.before_request
def require_llm():
    # The save/read endpoints work without an AI provider.
    if request.endpoint not in ("interview.start_interview", "interview.submit_answer"):
        return None
    if current_app.config.get("LLM_REQUIRED_FOR_INTERVIEW") and not get_services().llm_available:
        raise ServiceUnavailableError(
            "AI provider is not configured. Please add MISTRAL_API_KEY or GEMINI_API_KEY to .env file."
        )
    return None


@interview_bp.route("/start", methods=["POST"])
def start_interview():
    body = request.get_json(silent=True) or {}
    result = get_services().interviews.start(body.get("skills"), user_id=body.get("userId"))
    return jsonify({"success": True, "data": result.to_dict()})


@interview_bp.route("/submit", methods=["POST"])
def submit_answer():
    body = request.get_json(silent=True) or {}
    result = get_services().interviews.submit(
        session_id=body.get("sessionId"),
        question_number=body.get("questionNumber"),
        question=body.get("question"),
        answer=body.get("answer"),
        skills=body.get("skills"),
        previous_questions=body.get("previousQuestions") or [],
        user_id=body.get("userId"),
    )
    if result.degraded:
        current_app.logger.info("Submission for %s degraded: %s", body.get("sessionId"), "; ".join(result.degraded))
    return jsonify({"success": True, "data": result.to_dict()})


@interview_bp.route("/results/<string:session_id>", methods=["GET"])
def interview_results(session_id: str):
    return jsonify({"success": True, "data": get_services().interviews.results(session_id)})


@interview_bp.route("/history/<string:user_id>", methods=["GET"])
def interview_history(user_id: str):
    return jsonify({"success": True, "data": get_services().interviews.history(user_id)})


@interview_bp.route("/save-results", methods=["POST"])
def save_results():
    body = request.get_json(silent=True) or {}
    data = get_services().results.save(
        user_id=body.get("userId"),
        average_score=body.get("averageScore"),
        skill=body.get("skill"),
        skills_array=body.get("skillsArray"),
        total_questions=body.get("totalQuestions"),
        correct_answers=body.get("correctAnswers"),
        xp_earned=body.get("xpEarned"),
    )
    return jsonify({"success": True, "data": data})
