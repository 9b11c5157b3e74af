"""Logger shared by all pipeline modules.

Usage:
    from divvy_segments.logging_utils import logger
    logger.info("rows=%s", n)
"""

import logging
import sys

logger = logging.getLogger("divvy_segments")

# Only attach a handler once, even if the module is reloaded
if not logger.hasHandlers():
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(fmt="%(levelname)s - %(message)s"))
    logger.addHandler(handler)

logger.setLevel(logging.INFO)
logger.propagate = True
