# Overview: Server-Sent Events stream of "data changed, please refetch" signals.

import json
import queue

from flask import Blueprint, Response, current_app, jsonify, request

from ..decorators import AUTH_HEADER
from ..services import session_service
from ..services.broadcast import broadcaster


events_bp = Blueprint("events", __name__, url_prefix="/api/events")

KEEPALIVE_SECONDS = 15


def format_event(event: dict) -> str:
    return f"data: {json.dumps(event)}\n\n"


def _event_stream(subscription: queue.Queue, keepalive: float):
    try:
        yield ": connected\n\n"
        while True:
            try:
                event = subscription.get(timeout=keepalive)
            except queue.Empty:
                yield ": keepalive\n\n"
                continue
            yield format_event(event)
    finally:
        broadcaster.unsubscribe(subscription)


@events_bp.get("/stream")
def stream_route():
    """
    EventSource cannot send custom headers, so the session token is also
    accepted as ?token=.
    """
    token = (request.headers.get(AUTH_HEADER) or request.args.get("token") or "").strip()
    if not token:
        return jsonify({"error": "Authentication required"}), 401
    if not session_service.is_well_formed(token):
        return jsonify({"error": "Malformed authentication token"}), 400
    if session_service.validate_session(token) is None:
        return jsonify({"error": "Invalid or expired token"}), 401

    keepalive = current_app.config.get("EVENTS_KEEPALIVE_SECONDS", KEEPALIVE_SECONDS)
    subscription = broadcaster.subscribe()
    return Response(
        _event_stream(subscription, keepalive),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
