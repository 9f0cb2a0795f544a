"""Flask app that receives host events over HTTP."""

from __future__ import annotations

import asyncio
import logging
import time

from flask import Flask, jsonify, request

from gsd_chain.controller import ChainController
from gsd_chain.schemas import ChainReport

logger = logging.getLogger(__name__)


def create_app(controller: ChainController) -> Flask:
    """Return an app that forwards ``POST /event`` payloads to *controller*."""
    app = Flask(__name__)

    @app.route("/api/health")
    def api_health():
        return jsonify({"ok": True, "time_epoch_ms": int(time.time() * 1000)})

    @app.route("/event", methods=["POST"])
    def api_event():
        data = request.get_json(silent=True)
        if not isinstance(data, dict) or not data.get("type"):
            return jsonify({"error": "Expected a JSON event with a 'type'"}), 400

        result = asyncio.run(controller.handle_event(data))
        if isinstance(result, ChainReport):
            return jsonify({"event": data["type"], "report": result.model_dump(mode="json")})
        return jsonify({"event": data["type"], "pending": result})

    @app.route("/api/pending")
    def api_pending():
        record = controller.store.peek()
        if record is None:
            return jsonify({"pending": None})
        return jsonify(
            {
                "pending": record.model_dump(),
                "expired": record.is_expired(controller.store.clock(), controller.store.ttl_ms),
            }
        )

    return app


def main(controller: ChainController, *, port: int = 4097) -> None:
    """Serve *controller* on localhost."""
    app = create_app(controller)
    logger.info("Listening for host events on http://127.0.0.1:%d/event", port)
    app.run(host="127.0.0.1", port=port, debug=False, threaded=False)
