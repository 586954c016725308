"""Flask monitoring dashboard for the GELF input."""

import os

from flask import Flask, jsonify, render_template, request

from gelf_input.config import Config
from gelf_input.drop_tracker import DropTracker
from gelf_input.metrics import Metrics
from gelf_input.models import DecodeFailure

_TEMPLATE_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "templates")

DROP_REASONS = tuple(kind.value for kind in DecodeFailure)
MAX_DROPS_LISTED = 100


def _ratio(part: int, whole: int) -> float:
    return round(part / whole, 4) if whole else 0.0


def decode_health(snap: dict) -> dict:
    """Outcome shares for the datagrams seen so far."""
    received = snap["total_received"]
    drops = {reason: snap["drop_reasons"].get(reason, 0) for reason in DROP_REASONS}
    return {
        "received": received,
        "emitted": snap["total_emitted"],
        "drops_by_reason": drops,
        "drop_rate": _ratio(snap["total_dropped"], received),
        "emit_failure_rate": _ratio(snap["emit_failed"], received),
        "emit_rate": _ratio(snap["total_emitted"], received),
    }


def create_dashboard_app(config: Config, metrics: Metrics, drop_tracker: DropTracker) -> Flask:
    app = Flask(__name__, template_folder=_TEMPLATE_DIR)

    @app.route("/")
    def index():
        return render_template("dashboard.html", tag=config.tag, bind=config.bind, port=config.port)

    @app.route("/stats")
    def stats():
        snap = metrics.snapshot()
        return jsonify(
            decode=decode_health(snap),
            elapsed_seconds=snap["elapsed_seconds"],
            datagrams_per_second=snap["datagrams_per_second"],
        )

    @app.route("/drops")
    def drops():
        reason = request.args.get("reason")
        if reason is not None and reason not in DROP_REASONS:
            return jsonify(error=f"unknown reason {reason!r}", reasons=list(DROP_REASONS)), 400
        limit = request.args.get("limit", 10, type=int)
        limit = max(0, min(limit, MAX_DROPS_LISTED))
        return jsonify(drops=drop_tracker.get_recent(limit, reason=reason))

    @app.route("/policy")
    def policy():
        return jsonify(
            tag=config.tag,
            trust_client_timestamp=config.trust_client_timestamp,
            client_timestamp_to_i=config.client_timestamp_to_i,
            remove_timestamp_record=config.remove_timestamp_record,
            strip_leading_underscore=config.strip_leading_underscore,
            require_short_message=config.require_short_message,
        )

    @app.route("/health")
    def health():
        return jsonify(status="ok", listening=f"{config.bind}:{config.port}")

    return app


def run_dashboard(app: Flask, port: int):
    """Run the Flask app (intended for use in a daemon thread)."""
    app.run(host="0.0.0.0", port=port, use_reloader=False)
