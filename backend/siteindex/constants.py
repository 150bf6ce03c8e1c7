"""
Site Index Global Constants

Centralized location for all system-wide constants used across the application.
"""

from datetime import datetime, timezone

# Campus (partition) values, stored verbatim in the database
CAMPUSES = (
    "College of San Mateo",
    "Skyline College",
    "Cañada College",
    "District Office",
)

# Legacy campus codes accepted on query input
CAMPUS_ALIASES = {
    "CSM": "College of San Mateo",
    "SKY": "Skyline College",
    "CAN": "Cañada College",
    "CANADA": "Cañada College",
    "DO": "District Office",
    "DISTRICT": "District Office",
}

# Letter (category) values
LETTERS = tuple("ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789")


def get_current_timestamp() -> datetime:
    """Get current timestamp with UTC timezone."""
    return datetime.now(timezone.utc)


def normalize_campus(value: str) -> str:
    """Map a legacy campus code to its full name, leaving other values untouched."""
    return CAMPUS_ALIASES.get(value.strip().upper(), value.strip())


# Application Constants
APP_NAME = "SMCCCD Site Index"
APP_VERSION = "1.0.0"
