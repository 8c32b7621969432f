"""Control API routes: lookup tables, device list, clock status and preview."""

from flask import Blueprint, current_app, jsonify, request

from signalforge import formats
from signalforge.config import CHANNEL_SLOTS, BroadcastConfig
from signalforge.engine import Compiler

bp = Blueprint("web", __name__)


def _compiler() -> Compiler:
    return current_app.config["COMPILER"]


@bp.route("/api/backgrounds")
def backgrounds():
    return jsonify(formats.available_backgrounds())


@bp.route("/api/animations")
def animations():
    return jsonify(formats.available_animations())


@bp.route("/api/text-positions")
@bp.route("/api/logo-positions")
@bp.route("/api/overlay-positions")
def positions():
    return jsonify(formats.available_positions())


@bp.route("/api/video-formats")
def video_formats():
    return jsonify(formats.available_formats())


@bp.route("/api/decklink-sinks")
def decklink_sinks():
    discovery = _compiler().devices.discover()
    return jsonify({
        "devices": [{"id": name, "name": name} for name in discovery.sinks],
        "ok": discovery.ok,
        "error": discovery.error,
    })


@bp.route("/api/audio-channels")
def audio_channels():
    return jsonify([{"id": i, "label": f"Channel {i + 1}"} for i in range(CHANNEL_SLOTS)])


@bp.route("/api/clock-sync")
def clock_sync():
    return jsonify(_compiler().anchor.snapshot().to_dict())


@bp.route("/api/preview", methods=["POST"])
def preview():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"success": False, "error": "Expected a JSON object"}), 400

    config = BroadcastConfig.from_dict(data)
    plan = _compiler().compile(config)
    return jsonify({
        "success": True,
        "command": plan.command_line(),
        "args": plan.args,
        "filter_graph": plan.filter_graph.render(),
        "config": config.to_dict(),
    })
