import logging
from finplan.config import config

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

logger = logging.getLogger("finplan")
logging.basicConfig(
    level=getattr(logging, config["settings"]["logging_level"].upper(), logging.INFO),
    format=LOG_FORMAT,
)

# Google client and scheduler chatter only matters when something breaks
for noisy in ("apscheduler", "urllib3", "google.auth"):
    logging.getLogger(noisy).setLevel(logging.WARNING)
