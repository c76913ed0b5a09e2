import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"


def setup_logging(app) -> None:
    """
    One stream handler for the package loggers (services use
    logging.getLogger(__name__)) and Flask's app.logger, level from LOG_LEVEL.
    """
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)

    package_logger = logging.getLogger("invoicehub")
    package_logger.setLevel(level)
    if not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S"))
        package_logger.addHandler(handler)

    app.logger.setLevel(level)
