"""
Logbook Flask Application.

Main entry point for the web application. Initializes:
- Database schema
- Background task worker (stats refresh)
- API routes
- Error handlers

Usage:
    python -m logbook.app

Or with gunicorn:
    gunicorn 'logbook.app:create_app()'
"""

import logging
import os

from flask import Flask, jsonify
from flask_cors import CORS

from logbook.config import config
from logbook.exceptions import LogbookError
from logbook.models import init_db
from logbook.api import flights_bp, pilots_bp, tracking_bp
from logbook.services.tasks import task_queue

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
)
logger = logging.getLogger(__name__)


def create_app(start_worker: bool = True) -> Flask:
    """
    Application factory for Flask.

    Args:
        start_worker: Whether to start the background task worker.
                      Set to False for testing.

    Returns:
        Configured Flask application instance.
    """
    app = Flask(__name__)

    # Configuration
    app.config['SECRET_KEY'] = config.secret_key

    # Enable CORS for API endpoints
    CORS(app, resources={r'/api/*': {'origins': '*'}})

    # Initialize database
    logger.info('Initializing database...')
    init_db()

    # Register API blueprints
    app.register_blueprint(flights_bp)
    app.register_blueprint(tracking_bp)
    app.register_blueprint(pilots_bp)

    if start_worker and config.stats.worker_enabled:
        task_queue.start()
    else:
        logger.info('Background task worker disabled; queued tasks run on demand')

    @app.route('/health')
    def health():
        """Simple health check endpoint."""
        return {'status': 'ok'}

    # -------------------------------------------------------------------------
    # Error handlers
    # -------------------------------------------------------------------------

    @app.errorhandler(LogbookError)
    def logbook_error(e: LogbookError):
        if e.status_code >= 500:
            logger.error(f'{e.error_code}: {e.detail}')
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(404)
    def not_found(e):
        return {'error': 'Not found'}, 404

    @app.errorhandler(500)
    def server_error(e):
        logger.error(f'Server error: {e}')
        return {'error': 'Internal server error'}, 500

    return app


def run_development_server():
    """Run the development server."""
    app = create_app()

    port = int(os.environ.get('PORT', 5000))

    logger.info(f'Starting logbook on http://localhost:{port}')

    app.run(
        host='0.0.0.0',
        port=port,
        debug=config.debug,
        use_reloader=False,  # Reloader would start a second task worker
    )


if __name__ == '__main__':
    run_development_server()
