from flask import Blueprint, jsonify

from services.container import get_services


main_bp = Blueprint("main", __name__)


@main_bp.route("/api/health", methods=["GET"])
def health():
    services = get_services()
    return jsonify(
        {
            "status": "ok",
            "message": "GyaniX API is running",
            "llm": services.llm_client.name if services.llm_available else None,
            "database": services.store.is_available,
        }
    )
