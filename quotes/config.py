"""
config.py — Quote engine settings

Environment-driven settings for the quote engine. Values come from the
process environment (or a local .env file) and fall back to the defaults
below.

Usage:
    from quotes import config
    roster = config.RESOURCES_FILE
"""

import logging
import os
from pathlib import Path

import pytz
from dotenv import load_dotenv

load_dotenv()

PACKAGE_DIR = Path(__file__).resolve().parent

# Technician / subcontractor roster consulted for labor cost rates
DEFAULT_RESOURCES_FILE = PACKAGE_DIR / "data" / "resources.yaml"
RESOURCES_FILE = Path(os.getenv("QUOTES_RESOURCES_FILE", str(DEFAULT_RESOURCES_FILE)))

# Business timezone used to stamp sent / accepted / change-log timestamps
TIMEZONE_NAME = os.getenv("QUOTES_TIMEZONE", "America/Denver")

LOG_LEVEL = os.getenv("QUOTES_LOG_LEVEL", "INFO").upper()

# Author recorded on change-log entries when none is supplied
DEFAULT_AUTHOR = os.getenv("QUOTES_DEFAULT_AUTHOR", "Clearpoint")


def business_timezone():
    """Return the configured pytz timezone, falling back to UTC if unknown."""
    try:
        return pytz.timezone(TIMEZONE_NAME)
    except pytz.UnknownTimeZoneError:
        logging.getLogger(__name__).warning(
            "Unknown QUOTES_TIMEZONE %r, using UTC", TIMEZONE_NAME
        )
        return pytz.utc


def configure_logging(level: str = "") -> None:
    """Root logging setup for command-line entry points."""
    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
