from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Coordinates:
    longitude: float
    latitude: float


@dataclass(frozen=True)
class LoginEvent:
    """A single authenticated login with its best-known geographic origin."""

    longitude: float
    latitude: float
    occurred_at: datetime


@dataclass(frozen=True)
class DeviceRecord:
    """A stored device/session entry as kept by the session store."""

    longitude: float
    latitude: float
    created_at: datetime

    @property
    def has_location(self) -> bool:
        """Records saved before locations were captured carry (0, 0)."""
        return not (self.longitude == 0 and self.latitude == 0)


@dataclass(frozen=True)
class TravelViolation:
    """The first pair of logins found to be impossible to travel between."""

    later: LoginEvent
    earlier: LoginEvent
    distance_km: float
    time_diff_seconds: float
    speed_kmh: Optional[float]

    @property
    def is_simultaneous(self) -> bool:
        return self.time_diff_seconds == 0


@dataclass
class IdentityVerdict:
    """Outcome of validating one identity's login history."""

    identity: str
    is_valid: bool
    login_count: int
    violation: Optional[TravelViolation] = None

    def to_csv_row(self) -> dict[str, str]:
        """Convert to CSV row format."""
        violation = self.violation
        return {
            "identity": self.identity,
            "is_valid": "yes" if self.is_valid else "no",
            "login_count": str(self.login_count),
            "violation_distance_km": f"{violation.distance_km:.2f}" if violation else "",
            "violation_hours": f"{violation.time_diff_seconds / 3600:.2f}" if violation else "",
            "violation_speed_kmh": f"{violation.speed_kmh:.2f}" if violation and violation.speed_kmh is not None else "",
        }
