# Load environment variables FIRST before any other imports
from dotenv import load_dotenv
load_dotenv()

import os
import time
import uuid

from flask import Flask, g, jsonify, request


def create_app(test_config=None):
    """Create and configure an instance of the Flask application."""
    app = Flask(__name__, instance_relative_config=True)

    # =============================================================================
    # CONFIGURATION
    # =============================================================================
    from .config import load_settings

    app.config.from_mapping(
        JSON_SORT_KEYS=False,
        SECRET_KEY=os.environ.get('SECRET_KEY', 'dev'),
        SEARCH_SETTINGS=None,
        # settings -> SmartSearch; tests swap in engines with fake adapters
        SEARCH_ENGINE_FACTORY=None,
        # settings -> GameService, same idea
        GAME_SERVICE_FACTORY=None,
    )

    if test_config is not None:
        app.config.update(test_config)

    if app.config['SEARCH_SETTINGS'] is None:
        app.config['SEARCH_SETTINGS'] = load_settings()

    # =============================================================================
    # LOGGING
    # =============================================================================
    from .log import log, debug_log_event

    @app.before_request
    def assign_request_id():
        g.request_id = uuid.uuid4().hex[:12]
        g.request_start = time.time()

    @app.after_request
    def debug_request_log(response):
        duration_ms = None
        start_time = getattr(g, 'request_start', None)
        if start_time:
            duration_ms = int((time.time() - start_time) * 1000)
        debug_log_event({
            'event': 'request',
            'request_id': getattr(g, 'request_id', None),
            'method': request.method,
            'path': request.path,
            'query': request.query_string.decode('utf-8', errors='ignore'),
            'status': response.status_code,
            'duration_ms': duration_ms,
        })
        return response

    @app.teardown_request
    def debug_exception_log(error=None):
        if not error:
            return
        debug_log_event({
            'event': 'exception',
            'request_id': getattr(g, 'request_id', None),
            'path': request.path,
            'error_type': error.__class__.__name__,
            'error': str(error)
        })

    # =============================================================================
    # BLUEPRINTS & ROUTES
    # =============================================================================
    from .routes.search_api import search_bp
    from .routes.games_api import games_bp

    app.register_blueprint(search_bp)
    app.register_blueprint(games_bp)

    @app.route('/api/health')
    def health():
        return jsonify({'status': 'ok'})

    # Set config for app.run()
    app.config.setdefault('HOST', os.environ.get('FLASK_HOST', '127.0.0.1'))
    app.config.setdefault('PORT', int(os.environ.get('FLASK_PORT', '5000')))
    app.config['DEBUG'] = os.environ.get('FLASK_DEBUG', 'false').lower() in ('true', '1', 'yes')

    from sources import get_enabled_adapters
    settings = app.config['SEARCH_SETTINGS']
    if app.config['SEARCH_ENGINE_FACTORY'] is None:
        enabled = [adapter.name for adapter in get_enabled_adapters(settings)]
        if enabled:
            log(f"Search sources enabled: {', '.join(enabled)}")
        else:
            log("No search sources configured; set IGDB/RAWG/OpenCritic credentials in .env")

    return app

# App instance should be created by the caller (run.py or WSGI entrypoint)
