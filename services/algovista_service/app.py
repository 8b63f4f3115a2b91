"""AlgoVista Service - Quart Application Setup.

Lean entry point; setup logic lives in startup_setup.py.
"""

from __future__ import annotations

from quart import Quart

from services.algovista_service.api.equation_routes import equation_bp
from services.algovista_service.api.health_routes import health_bp
from services.algovista_service.config import Settings, settings
from services.algovista_service.error_handlers import register_error_handlers
from services.algovista_service.startup_setup import (
    initialize_services,
    setup_cors,
    shutdown_services,
)


def create_app(app_settings: Settings | None = None) -> Quart:
    """Build the Quart app with routes, error handlers and lifecycle hooks."""
    service_settings = app_settings or settings
    app = Quart(__name__)

    @app.before_serving
    async def startup() -> None:
        """Initialize services on startup."""
        await initialize_services(app, service_settings)

    @app.after_serving
    async def shutdown() -> None:
        """Clean up services on shutdown."""
        await shutdown_services(app)

    register_error_handlers(app)
    setup_cors(app, service_settings)

    # Register blueprints
    app.register_blueprint(health_bp)
    app.register_blueprint(equation_bp, url_prefix="/api")

    return app


app = create_app()

if __name__ == "__main__":
    import sys

    # For local development only
    if "--reload" in sys.argv:
        app.run(host=settings.HOST, port=settings.PORT, debug=True)
    else:
        app.run(host=settings.HOST, port=settings.PORT)
