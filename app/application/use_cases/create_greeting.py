"""Use cases for producing the greeting that opens a check-in prompt."""

from datetime import datetime

from app.domain.entities.greeting import Greeting

MORNING_START_HOUR = 5
DAYTIME_START_HOUR = 10
EVENING_START_HOUR = 17


def create_greeting(local_time: datetime) -> Greeting:
    """Return the greeting matching the time-of-day band of ``local_time``.

    Mornings run from 05:00 to 10:00 and daytime until 17:00; everything else,
    including the small hours, counts as evening.
    """

    hour = local_time.hour
    if MORNING_START_HOUR <= hour < DAYTIME_START_HOUR:
        return Greeting(band="morning", message="Good morning", emoji="☀️")
    if DAYTIME_START_HOUR <= hour < EVENING_START_HOUR:
        return Greeting(band="daytime", message="Hello", emoji="🌞")
    return Greeting(band="evening", message="Good evening", emoji="🌙")
