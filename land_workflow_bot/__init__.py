"""Land workflow bot: land requests, activity reports, and property decisions over Slack."""

from .background import run_async  # noqa: F401
from .config import AppSettings, get_settings, load_settings  # noqa: F401
from .db import Base, Database  # noqa: F401
from .logging_config import configure_logging  # noqa: F401
from .models import ManagerAssignment  # noqa: F401

__version__ = "0.1.0"

__all__ = [
    "AppSettings",
    "get_settings",
    "load_settings",
    "run_async",
    "Base",
    "Database",
    "ManagerAssignment",
    "configure_logging",
    "__version__",
]
