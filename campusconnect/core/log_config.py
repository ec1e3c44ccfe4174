import logging

LOG_FORMAT = "[%(levelname)s] %(asctime)s %(name)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)
