from dataclasses import dataclass


@dataclass(frozen=True)
class Greeting:
    """Opening line of a check-in prompt for a time-of-day band."""

    band: str
    message: str
    emoji: str
