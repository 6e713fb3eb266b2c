import logging
import sys


def setup_logging(level: str = "INFO"):
    logger = logging.getLogger()
    if logger.handlers:  # don't double add during reload
        return
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s :: %(message)s")
    )
    logger.addHandler(handler)
