"""
Development server: `python -m api`.
In production serve create_app() from a WSGI server (gunicorn/uwsgi).
"""
import logging
import os

from . import create_app

logger = logging.getLogger("api")


def configure_logging():
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def main(app=None):
    configure_logging()
    # APP_ENV picks the config class (see get_config())
    app = app or create_app()
    host = os.getenv("FLASK_RUN_HOST", "127.0.0.1")
    port = int(os.getenv("FLASK_RUN_PORT", "8000"))
    debug = os.getenv("FLASK_DEBUG", str(app.config.get("DEBUG", False))).lower() in ("1", "true", "yes")
    logger.info("starting blog auth api env=%s host=%s port=%s debug=%s",
                app.config.get("APP_ENV"), host, port, debug)
    app.run(host=host, port=port, debug=debug)


if __name__ == "__main__":
    main()
