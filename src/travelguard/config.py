from dataclasses import dataclass, replace
from typing import Callable

DEFAULT_MAX_ALLOWED_SPEED_KMH = 10.0

# Per-identity histories are small; anything beyond this is trimmed to the most recent logins.
DEFAULT_MAX_EVENTS = 500


@dataclass(frozen=True)
class ValidatorConfig:
    max_allowed_speed_kmh: float = DEFAULT_MAX_ALLOWED_SPEED_KMH
    max_events: int = DEFAULT_MAX_EVENTS


ValidatorOption = Callable[[ValidatorConfig], ValidatorConfig]


def with_max_allowed_speed(speed_kmh: float) -> ValidatorOption:
    """
    Override the maximum plausible travel speed in km/h.

    A value of exactly 0 means "not set" and keeps whatever speed is already configured.
    """

    def apply(config: ValidatorConfig) -> ValidatorConfig:
        if speed_kmh == 0:
            return config
        return replace(config, max_allowed_speed_kmh=float(speed_kmh))

    return apply


def with_max_events(limit: int) -> ValidatorOption:
    """Override how many of the most recent logins a single check compares. 0 or below keeps the current limit."""
    """Override how many of the most recent logins a single check compares. Values of 0 or below keep the current limit."""

    def apply(config: ValidatorConfig) -> ValidatorConfig:
        if limit <= 0:
            return config
        return replace(config, max_events=int(limit))

    return apply


def build_config(*options: ValidatorOption) -> ValidatorConfig:
    config = ValidatorConfig()
    for option in options:
        config = option(config)
    return config
