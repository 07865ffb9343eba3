"""
Swing and handedness analysis endpoints.

Accepts pose keypoints produced by an external pose model, runs the
requested analysis and returns the result as JSON. Requests carrying a
session_id share an AnalysisSession, which keeps the last good result
and rejects overlapping runs.
"""

import logging
import os
import threading
from collections import OrderedDict

from flask import Blueprint, jsonify, request

from services.analysis_session import ERROR_IN_PROGRESS, AnalysisSession
from services.handedness import HandednessConfig
from services.swing_detector import PRESETS, SwingDetectionConfig

logger = logging.getLogger(__name__)

analysis_bp = Blueprint("analysis", __name__)

DEFAULT_MAX_POSE_FRAMES = 20000
DEFAULT_MAX_SESSIONS = 100

# Least recently used first.
_sessions = OrderedDict()
_sessions_lock = threading.Lock()


def get_session(session_id):
    """
    Get or create the session for an id; None gives a throwaway session.

    The registry keeps at most MAX_SESSIONS sessions. Creating one more
    evicts the least recently used idle session.
    """
    if not session_id:
        return AnalysisSession()

    max_sessions = int(os.environ.get("MAX_SESSIONS", DEFAULT_MAX_SESSIONS))
    with _sessions_lock:
        session = _sessions.get(session_id)
        if session is not None:
            _sessions.move_to_end(session_id)
            return session

        session = AnalysisSession(session_id)
        _sessions[session_id] = session
        _evict(max_sessions)
        return session


def _evict(max_sessions):
    """Drop least recently used idle sessions above the cap. Caller holds the lock."""
    for session_id in list(_sessions)[:-1]:
        if len(_sessions) <= max_sessions:
            break
        if _sessions[session_id].is_analyzing:
            continue
        del _sessions[session_id]
        logger.info("Evicted session %s", session_id)


def _unauthorized():
    secret = os.environ.get("FLASK_SECRET_KEY")
    if secret and request.headers.get("x-secret") != secret:
        return jsonify({"status": "failed", "error": "Unauthorized"}), 401
    return None


def _failed(message, status):
    return jsonify({"status": "failed", "error": message}), status


def parse_poses(raw_poses):
    """
    Convert a JSON pose map into frame index -> list of poses.

    Args:
        raw_poses: Dict keyed by frame number (string or int).

    Returns:
        Dict with int keys.

    Raises:
        ValueError: If the map, a key or a frame entry is malformed, or
            the map exceeds MAX_POSE_FRAMES.
    """
    if not isinstance(raw_poses, dict):
        raise ValueError("poses must be an object keyed by frame number")

    max_frames = int(os.environ.get("MAX_POSE_FRAMES", DEFAULT_MAX_POSE_FRAMES))
    if len(raw_poses) > max_frames:
        raise ValueError(f"poses has {len(raw_poses)} frames, limit is {max_frames}")

    poses = {}
    for key, frame_poses in raw_poses.items():
        try:
            frame = int(key)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid frame number: {key}") from None
        if frame < 0:
            raise ValueError(f"Invalid frame number: {key}")
        if not isinstance(frame_poses, list):
            raise ValueError(f"poses[{key}] must be a list of poses")
        poses[frame] = frame_poses
    return poses


def _parse_common(data):
    """Validate the fields shared by both analyses."""
    poses = parse_poses(data.get("poses", {}))

    model = data.get("model", "MoveNet")
    if not isinstance(model, str):
        raise ValueError("model must be a string")

    pose_index = data.get("pose_index", 0)
    if not isinstance(pose_index, int) or isinstance(pose_index, bool) or pose_index < 0:
        raise ValueError("pose_index must be a non-negative integer")

    overrides = data.get("config") or {}
    if not isinstance(overrides, dict):
        raise ValueError("config must be an object")

    return poses, model, pose_index, overrides


def _run_failed(error):
    status = 409 if error == ERROR_IN_PROGRESS else 422
    return _failed(error, status)


@analysis_bp.route("/api/swings", methods=["POST"])
def analyze_swings():
    """
    Detect swings in a pose stream.

    Expects JSON body:
        { "poses": {"0": [pose, ...], ...}, "fps": 30, "model": "MoveNet",
          "pose_index": 0, "preset": "standard", "config": {...},
          "session_id": "abc", "include_frames": true }
    Requires header: x-secret matching FLASK_SECRET_KEY env var.

    Returns:
        JSON with the swing detection result, or error.
    """
    denied = _unauthorized()
    if denied:
        return denied

    data = request.get_json()
    if not data:
        return _failed("Request body must be JSON", 400)

    try:
        poses, model, pose_index, overrides = _parse_common(data)

        fps = data.get("fps")
        if not isinstance(fps, (int, float)) or isinstance(fps, bool) or fps <= 0:
            raise ValueError("fps must be a positive number")

        preset_name = data.get("preset", "standard")
        if not isinstance(preset_name, str) or preset_name not in PRESETS:
            raise ValueError(
                f"Invalid preset: {preset_name}. Must be one of: {', '.join(PRESETS)}"
            )
        config = SwingDetectionConfig.from_dict(overrides, base=PRESETS[preset_name])

        include_frames = data.get("include_frames", True)
        if not isinstance(include_frames, bool):
            raise ValueError("include_frames must be a boolean")
    except ValueError as e:
        logger.warning("Rejected swing analysis request: %s", e)
        return _failed(str(e), 400)

    session = get_session(data.get("session_id"))
    logger.info("Swing analysis: %d frames, session=%s", len(poses), session.session_id)

    result, error = session.run_swings(
        poses, fps, model=model, pose_index=pose_index, config=config
    )
    if result is None:
        return _run_failed(error)

    return jsonify({
        "status": "completed",
        "session_id": session.session_id,
        "result": result.to_dict(include_frames=include_frames),
    })


@analysis_bp.route("/api/handedness", methods=["POST"])
def analyze_handedness():
    """
    Detect the dominant hand in a pose stream.

    Expects JSON body:
        { "poses": {...}, "model": "MoveNet", "pose_index": 0,
          "config": {...}, "session_id": "abc" }

    Returns:
        JSON with the handedness result, or error.
    """
    denied = _unauthorized()
    if denied:
        return denied

    data = request.get_json()
    if not data:
        return _failed("Request body must be JSON", 400)

    try:
        poses, model, pose_index, overrides = _parse_common(data)
        config = HandednessConfig.from_dict(overrides)
    except ValueError as e:
        logger.warning("Rejected handedness request: %s", e)
        return _failed(str(e), 400)

    session = get_session(data.get("session_id"))
    result, error = session.run_handedness(
        poses, model=model, pose_index=pose_index, config=config
    )
    if result is None:
        return _run_failed(error)

    return jsonify({
        "status": "completed",
        "session_id": session.session_id,
        "result": result.to_dict(),
    })


@analysis_bp.route("/api/sessions/<session_id>", methods=["GET"])
def get_session_state(session_id):
    """
    Last-known-good results and error state of a session.

    Returns:
        JSON session state, or 404 if the session does not exist.
    """
    denied = _unauthorized()
    if denied:
        return denied

    with _sessions_lock:
        session = _sessions.get(session_id)
    if session is None:
        return _failed(f"Unknown session: {session_id}", 404)

    return jsonify({"status": "ok", "session": session.to_dict()})


@analysis_bp.route("/api/sessions/<session_id>", methods=["DELETE"])
def clear_session(session_id):
    """Clear a session's results and forget it."""
    denied = _unauthorized()
    if denied:
        return denied

    with _sessions_lock:
        session = _sessions.pop(session_id, None)
    if session is None:
        return _failed(f"Unknown session: {session_id}", 404)

    session.clear_results()
    return jsonify({"status": "cleared", "session_id": session_id})
