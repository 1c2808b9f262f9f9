# exam_service/core/logging_config.py
import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

_configured = False


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger once for the API process or an RQ worker."""
    global _configured
    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.setLevel(level.upper())
    root.addHandler(handler)

    # keep third-party clients quiet unless something goes wrong
    for noisy in ("httpx", "openai", "botocore", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    _configured = True
