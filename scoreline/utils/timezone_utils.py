"""
Timezone utility functions for match kickoff times
"""

from datetime import datetime, timezone

import pytz
from flask import current_app


def get_app_timezone():
    """Get the application's configured timezone"""
    try:
        timezone_name = current_app.config.get("TIMEZONE", "UTC")
        return pytz.timezone(timezone_name)
    except pytz.UnknownTimeZoneError:
        # Fallback to UTC if timezone is invalid
        return pytz.UTC


def get_utc_time():
    """Get current time in UTC"""
    return datetime.now(timezone.utc)


def combine_kickoff(match_date, match_time):
    """Combine a match's local date and time into an aware datetime"""
    if match_date is None or match_time is None:
        return None

    app_tz = get_app_timezone()
    return app_tz.localize(datetime.combine(match_date, match_time))


def convert_to_utc(dt):
    """Convert a datetime to UTC"""
    if dt is None:
        return None

    # If datetime is naive, assume it's in the application timezone
    if dt.tzinfo is None:
        app_tz = get_app_timezone()
        dt = app_tz.localize(dt)

    return dt.astimezone(timezone.utc)


def format_kickoff(match_date, match_time, format_str="%a %d/%m at %H:%M"):
    """Format a kickoff in the application's timezone"""
    kickoff = combine_kickoff(match_date, match_time)
    if kickoff is None:
        return "TBD"

    return kickoff.strftime(format_str)
