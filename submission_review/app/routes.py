from __future__ import annotations

import logging
from typing import Any, Tuple

from flask import Flask, jsonify, request

from submission_review.app.dispatcher import ReviewDispatcher


logger = logging.getLogger(__name__)


def register_review_routes(app: Flask, *, dispatcher: ReviewDispatcher) -> None:
    @app.route("/health", methods=["GET"])
    def health() -> Tuple[Any, int]:
        return jsonify({"status": "ok", "aiReviewAvailable": dispatcher.is_available()}), 200

    @app.route("/api/submissions/<submission_id>/ai-review", methods=["GET"])
    def get_review(submission_id: str) -> Tuple[Any, int]:
        try:
            body, status = dispatcher.get_review(submission_id)
        except Exception:  # noqa: BLE001 - hide internals from clients
            logger.exception("Failed to read review: submission_id=%s", submission_id)
            return jsonify({"error": "Internal error"}), 500
        return jsonify(body), status

    @app.route("/api/submissions/<submission_id>/ai-review", methods=["POST"])
    def trigger_review(submission_id: str) -> Tuple[Any, int]:
        payload = request.get_json(silent=True) or {}
        force = isinstance(payload, dict) and payload.get("force") is True

        try:
            body, status = dispatcher.trigger_review(submission_id, force=force)
        except Exception:  # noqa: BLE001 - hide internals from clients
            logger.exception("Failed to queue review: submission_id=%s", submission_id)
            return jsonify({"error": "Internal error"}), 500
        return jsonify(body), status
