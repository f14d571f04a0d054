"""
TripRoute – main application entry point

* Flask app exposing the planner, waypoint snapping and reverse geocoding
  under `/api/...`.
* Planning talks to an OpenAI-compatible chat endpoint for itinerary seeds
  and to an OSRM server for snapping and routing; both are configured from
  the environment (see `triproute/api/config.py`).
"""

import os
import logging

from flask import Flask, jsonify
from flask_cors import CORS
from dotenv import load_dotenv

# --------------------------------------------------------------------------- #
# Environment & logging
# --------------------------------------------------------------------------- #
load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

from triproute.api.config import get_port  # noqa: E402
from triproute.routes.travel import create_travel_blueprint  # noqa: E402


def create_app(**services) -> Flask:
    """Build the Flask app. ``services`` are passed to the travel blueprint."""
    app = Flask(__name__)
    app.config.update(JSON_SORT_KEYS=False)

    # CORS for local dev / cross‑origin front‑end requests
    CORS(app, origins="*")

    app.register_blueprint(create_travel_blueprint(**services))

    @app.route("/debug")
    def debug():
        """Simple JSON diagnostic endpoint."""
        return {
            "status": "ok",
            "endpoints": {
                "plan": "/api/llm/plan",
                "snap": "/api/routes/osrm",
                "reverse_geocode": "/api/geocode/reverse",
                "health": "/api/health",
            },
        }

    @app.errorhandler(404)
    def not_found(_err):
        return jsonify({"error": "Not found"}), 404

    return app


app = create_app()

# --------------------------------------------------------------------------- #
# Local development runner ( `python main.py` )
# --------------------------------------------------------------------------- #
if __name__ == "__main__":
    port = get_port()
    logger.info("Starting trip planner on http://localhost:%d", port)
    app.run(host="0.0.0.0", port=port, debug=os.getenv("FLASK_DEBUG") == "1")

__all__ = ["app", "create_app"]
