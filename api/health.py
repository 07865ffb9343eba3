"""
Health check endpoints.

Provides root status and health check routes for monitoring.
"""

import os

from flask import Blueprint, jsonify

from utils.keypoints import SUPPORTED_MODELS

SERVICE_NAME = "Swing Timeline API"

health_bp = Blueprint("health", __name__)


@health_bp.route("/", methods=["GET"])
def root():
    """
    Root status endpoint.

    Returns:
        JSON with service name and status.
    """
    return jsonify({"message": SERVICE_NAME, "status": "running"})


@health_bp.route("/health", methods=["GET"])
def health():
    """
    Health check endpoint.

    Returns:
        JSON with health status and configuration info.
    """
    return jsonify({
        "status": "healthy",
        "service": SERVICE_NAME,
        "auth_required": bool(os.environ.get("FLASK_SECRET_KEY")),
        "supported_models": list(SUPPORTED_MODELS),
    })
