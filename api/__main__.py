"""
Entrypoint for running the API in development.
"""
import logging
import os
from . import create_app


def configure_logging(level_name: str) -> None:
    """Process-wide logging setup; only the entrypoint touches the root logger."""
    level = getattr(logging, str(level_name).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# Respect APP_ENV for configuration selection (handled in get_config())
app = create_app()
configure_logging(app.config.get("LOG_LEVEL", "INFO"))

if __name__ == "__main__":
    # Dev-friendly defaults; in production you'd run via a WSGI server (gunicorn/uwsgi)
    host = os.getenv("FLASK_RUN_HOST", "0.0.0.0")
    port = int(app.config.get("PORT", 3000))
    debug = bool(os.getenv("FLASK_DEBUG", str(app.config.get("DEBUG", True))).lower() in ("1", "true", "yes"))
    app.logger.info("Auth service on %s", port)
    # request threads share the in-memory stores
    app.run(host=host, port=port, debug=debug, threaded=True)
