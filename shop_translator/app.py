"""
Shop Translator Application
===========================
Flask application factory and main entry point.
"""
from flask import Flask
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from shop_translator.config import config
from shop_translator.database.connection import get_database
from shop_translator.api.routes import (
    create_jobs_blueprint,
    create_queue_blueprint,
    create_translate_blueprint,
    create_health_blueprint,
    create_logs_blueprint
)
from shop_translator.job_queue.base import JobPayloadError
from shop_translator.job_queue.jobs import TranslationJobService, get_job_service
from shop_translator.services.orchestrator import TranslationOrchestrator
from shop_translator.utils.logging import get_logger


def create_app(
    testing: bool = False,
    job_service: TranslationJobService = None,
    orchestrator: TranslationOrchestrator = None
) -> Flask:
    """
    Application factory for Flask app.

    Args:
        testing: If True, configure for testing (no database, no workers)
        job_service: Job service to serve; the process-wide one if not given
        orchestrator: Orchestrator for synchronous translation

    Returns:
        Configured Flask application
    """
    app = Flask(__name__)

    app.config.update(
        SECRET_KEY=config.server.secret_key,
        JSON_SORT_KEYS=False,
        TESTING=testing,
        JOB_SERVICE=job_service,
        ORCHESTRATOR=orchestrator
    )

    # CORS configuration
    cors_origins = config.server.cors_origins
    if testing:
        cors_origins = ['*']

    CORS(
        app,
        resources={r"/api/*": {"origins": cors_origins}},
        supports_credentials=True
    )

    # Initialize database and workers
    if not testing:
        get_database()
        if config.server.start_workers:
            service = job_service or get_job_service()
            service.supervisor.start()
            app.config['JOB_SERVICE'] = service

    # Register blueprints
    app.register_blueprint(create_jobs_blueprint())
    app.register_blueprint(create_queue_blueprint())
    app.register_blueprint(create_translate_blueprint())
    app.register_blueprint(create_health_blueprint())
    app.register_blueprint(create_logs_blueprint())

    # Error handlers
    @app.errorhandler(JobPayloadError)
    def invalid_payload(e):
        return {'error': 'Invalid job payload', 'details': e.errors}, 400

    @app.errorhandler(HTTPException)
    def http_error(e):
        return {'error': e.name, 'details': e.description}, e.code

    @app.errorhandler(Exception)
    def internal_error(e):
        logger = get_logger().api_logger
        logger.error(f"Internal error: {e}", exc_info=True)
        return {'error': 'Internal server error'}, 500

    # Log startup
    logger = get_logger()
    logger.api_logger.info(f"Shop Translator started on {config.server.host}:{config.server.port}")

    return app


def run_server():
    """Run the Flask development server."""
    app = create_app()

    print(f"""
Shop Translator
  Server: http://{config.server.host}:{config.server.port}
  Model:  {config.api.model}
  Queue:  {app.config['JOB_SERVICE'].supervisor.mode if app.config['JOB_SERVICE'] else 'not started'}
    """)

    app.run(
        host=config.server.host,
        port=config.server.port,
        debug=config.server.debug,
        threaded=True,
        use_reloader=False
    )


if __name__ == '__main__':
    run_server()
