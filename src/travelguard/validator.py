from collections.abc import Sequence
from typing import Optional

import structlog

from travelguard.config import ValidatorConfig, ValidatorOption, build_config
from travelguard.geo import pairwise_distance_matrix
from travelguard.models import LoginEvent, TravelViolation

logger = structlog.get_logger(__name__)


class TravelValidator:
    """
    Detects "impossible travel" in a login history.

    Every login is compared with every other login, not only with its temporal neighbours,
    so a jump between two distant points in history is caught even when the logins in between
    look plausible. The caller's sequence is never reordered; sorting happens on a copy.

    Histories longer than `max_events` are cut to the most recent logins before comparing.
    Logins older than the cut are never checked, so a violation that only involves them is
    not reported and the verdict for such a history reflects its recent part only.

    A single instance only holds an immutable ValidatorConfig and may be shared between threads.
    """

    def __init__(self, config: Optional[ValidatorConfig] = None):
        self.config = config if config is not None else ValidatorConfig()

    @property
    def max_allowed_speed_kmh(self) -> float:
        return self.config.max_allowed_speed_kmh

    def is_valid(self, events: Sequence[LoginEvent]) -> bool:
        """Return False if any two logins imply a travel speed above the configured maximum."""
        return self.find_violation(events) is None

    def find_violation(self, events: Sequence[LoginEvent]) -> Optional[TravelViolation]:
        """
        Return the first violating pair in enumeration order, or None when the history is plausible.

        Logins are ordered most recent first and pairs (i, j) are visited with i < j, so the
        later login is always `events[i]` and the time difference is never negative.
        """
        if len(events) < 2:
            return None

        logins = sorted(
            events, key=lambda event: (event.occurred_at, event.latitude, event.longitude), reverse=True
        )

        if len(logins) > self.config.max_events:
            logins = self._most_recent(logins)

        distances = pairwise_distance_matrix(
            [login.latitude for login in logins],
            [login.longitude for login in logins],
        )

        for current_ind, current_login in enumerate(logins):
            for target_ind in range(current_ind + 1, len(logins)):
                target_login = logins[target_ind]

                distance_km = float(distances[current_ind, target_ind])
                time_diff = (current_login.occurred_at - target_login.occurred_at).total_seconds()

                if time_diff == 0:
                    if distance_km == 0:
                        continue

                    logger.debug(
                        "Simultaneous logins from different locations",
                        distance_km=round(distance_km, 3),
                        occurred_at=current_login.occurred_at.isoformat(),
                    )
                    return TravelViolation(
                        later=current_login,
                        earlier=target_login,
                        distance_km=distance_km,
                        time_diff_seconds=time_diff,
                        speed_kmh=None,
                    )

                speed_kmh = distance_km / (time_diff / 60 / 60)
                if speed_kmh > self.config.max_allowed_speed_kmh:
                    logger.debug(
                        "Impossible travel detected",
                        distance_km=round(distance_km, 3),
                        time_diff_seconds=time_diff,
                        speed_kmh=round(speed_kmh, 2),
                        max_allowed_speed_kmh=self.config.max_allowed_speed_kmh,
                    )
                    return TravelViolation(
                        later=current_login,
                        earlier=target_login,
                        distance_km=distance_km,
                        time_diff_seconds=time_diff,
                        speed_kmh=speed_kmh,
                    )

        return None

    def _most_recent(self, logins: list[LoginEvent]) -> list[LoginEvent]:
        """
        Keep the `max_events` most recent logins of a history sorted most recent first.

        Logins sharing the timestamp of the last kept login are kept with it, so the cut never
        splits a group of simultaneous logins and does not depend on the caller's input order.
        """
        end = self.config.max_events
        cutoff = logins[end - 1].occurred_at
        while end < len(logins) and logins[end].occurred_at == cutoff:
            end += 1

        logger.warning(
            "Login history exceeds limit, older logins are not compared",
            login_count=len(logins),
            max_events=self.config.max_events,
            compared=end,
            dropped=len(logins) - end,
        )
        return logins[:end]


def new_travel_validator(*options: ValidatorOption) -> TravelValidator:
    """Build a validator from the default configuration and the given options, applied in order."""
    return TravelValidator(build_config(*options))
