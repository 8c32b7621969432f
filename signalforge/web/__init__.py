"""Flask application factory for the SignalForge control API."""

from flask import Flask, jsonify

from signalforge.engine import Compiler
from signalforge.sync import ClockSyncWorker


def create_app(compiler: Compiler | None = None, start_sync: bool = False) -> Flask:
    app = Flask(__name__)
    app.config["COMPILER"] = compiler or Compiler()
    app.config["MAX_CONTENT_LENGTH"] = 1024 * 1024  # 1 MB

    if start_sync:
        worker = ClockSyncWorker(app.config["COMPILER"].anchor, app.config["COMPILER"].settings)
        worker.start()
        app.config["SYNC_WORKER"] = worker

    from signalforge.web.routes import bp
    app.register_blueprint(bp)

    @app.errorhandler(413)
    def request_entity_too_large(error):
        return jsonify({"error": "Request too large"}), 413

    return app
