"""
ERP Landscape Analyzer
Flask Application Factory.

Usage:
    from landscape import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import json
import logging
import os

import click
from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from landscape.config import config
from landscape.middleware.logging_config import configure_logging
from landscape.models import db

logger = logging.getLogger(__name__)

migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # per-blueprint limits only
    storage_uri=os.getenv("REDIS_URL", "memory://"),
)


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    cfg = config[config_name]
    app.config.from_object(cfg() if config_name == "production" else cfg)

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    app.config.setdefault("MAX_CONTENT_LENGTH", 2 * 1024 * 1024)  # 2 MB

    # ── Models (register tables with SQLAlchemy metadata) ────────────────
    from landscape.models import audit as _audit_models  # noqa: F401
    from landscape.models import run as _run_models      # noqa: F401

    with app.app_context():
        db.create_all()

    # ── Blueprints ───────────────────────────────────────────────────────
    from landscape.blueprints.analysis_bp import analysis_bp

    limiter.limit(app.config.get("API_RATE_LIMIT", "300 per minute"))(analysis_bp)
    app.register_blueprint(analysis_bp)

    # ── CLI commands ─────────────────────────────────────────────────────
    _register_cli(app)

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return {"error": "Internal server error"}, 500

    logger.info("App ready env=%s mode=%s", config_name, app.config.get("EXTRACTION_MODE"))
    return app


def _split(value: str | None) -> list[str] | None:
    if not value:
        return None
    return [v.strip() for v in value.split(",") if v.strip()]


def _register_cli(app: Flask) -> None:
    from landscape.core.exceptions import ValidationError
    from landscape.extraction.orchestrator import EXIT_FATAL, EXIT_OK, EXIT_VALIDATION
    from landscape.models.audit import verify_audit_chain

    @app.cli.command("extract")
    @click.option("--module", "modules", help="Comma-separated module filter (e.g. FI,CO).")
    @click.option("--category", "categories", help="Comma-separated category filter.")
    @click.option("--extractor", "extractor_ids", help="Comma-separated extractor ids.")
    @click.option("--concurrency", type=int, default=None, help="Max extractors in flight.")
    @click.option("--mode", type=click.Choice(["mock", "live"]), default=None)
    @click.option("--user", default="cli")
    def extract_cmd(modules, categories, extractor_ids, concurrency, mode, user):
        """Run an extraction and the assessment pipeline; exit with the run's code."""
        from landscape.services.run_service import start_run

        try:
            run = start_run(
                modules=_split(modules),
                categories=_split(categories),
                extractor_ids=_split(extractor_ids),
                concurrency=concurrency,
                mode=mode,
                user=user,
                wait=True,
            )
        except ValidationError as exc:
            click.echo(json.dumps({"error": str(exc), "details": exc.details}), err=True)
            raise SystemExit(EXIT_VALIDATION) from exc
        click.echo(json.dumps(run.to_dict(), indent=2, default=str))
        raise SystemExit(run.exit_code if run.exit_code is not None else EXIT_FATAL)

    @app.cli.command("verify-audit")
    def verify_audit_cmd():
        """Walk the operation audit chain; exit 5 when it has been tampered with."""
        result = verify_audit_chain()
        click.echo(json.dumps(result, indent=2))
        raise SystemExit(EXIT_OK if result["valid"] else EXIT_FATAL)
