"""
Logging setup shared by the API and the Streamlit app.
"""
import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
HANDLER_NAME = "landed_cost"


def setup_logging(level: Optional[str] = None):
    """Configure the landed_cost logger hierarchy with a single stream handler."""
    if level is None:
        from .settings import get_settings
        level = get_settings().log_level

    root = logging.getLogger("landed_cost")
    root.setLevel(level)

    # Streamlit reruns the script; avoid stacking handlers
    if not any(h.get_name() == HANDLER_NAME for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        handler.set_name(HANDLER_NAME)
        root.addHandler(handler)

    return root
