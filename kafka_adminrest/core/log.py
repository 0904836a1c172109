"""Process-wide logging set-up."""
import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"


def setup_logging(level: str) -> None:
    lvl = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=lvl, format=LOG_FORMAT)
    # kafka-python and ldap3 are chatty at INFO
    logging.getLogger("kafka").setLevel(max(lvl, logging.WARNING))
    logging.getLogger("ldap3").setLevel(max(lvl, logging.WARNING))
