"""Application factory and app-wide configuration."""

import atexit
import logging
import os
from typing import Any, Mapping, Optional

from flask import Flask
from flask_cors import CORS

from investcalc.app.api.routes import api_bp
from investcalc.core.export import ExportJobRegistry

logger = logging.getLogger(__name__)

DEFAULT_CORS_ORIGINS = ["http://localhost:5173", "http://127.0.0.1:5173"]


def create_app(config: Optional[Mapping[str, Any]] = None) -> Flask:
    """Build the Flask app instance.

    Settings come from the defaults below, then ``INVESTCALC_*`` environment
    variables, then ``config``. The export registry is shut down when the
    process exits.
    """
    app = Flask(__name__)
    app.config.from_mapping(
        EXPORT_DIR=os.path.join(app.instance_path, "exports"),
        EXPORT_WORKERS=2,
        EXPORT_JOB_HISTORY=100,
        CORS_ORIGINS=DEFAULT_CORS_ORIGINS,
        LOG_LEVEL="INFO",
    )
    app.config.from_prefixed_env("INVESTCALC")
    if config:
        app.config.update(config)

    app.logger.setLevel(app.config["LOG_LEVEL"])
    os.makedirs(app.config["EXPORT_DIR"], exist_ok=True)

    CORS(
        app,
        resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"]}},
        supports_credentials=True,
    )

    export_jobs = ExportJobRegistry(
        max_workers=int(app.config["EXPORT_WORKERS"]),
        max_finished=int(app.config["EXPORT_JOB_HISTORY"]),
    )
    app.extensions["export_jobs"] = export_jobs
    atexit.register(export_jobs.shutdown)
    app.register_blueprint(api_bp, url_prefix="/api")
    logger.debug("exports will be written to %s", app.config["EXPORT_DIR"])
    return app
