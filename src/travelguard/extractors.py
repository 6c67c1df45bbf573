"""
Helpers that pull login context out of inbound request headers.

They sit in front of the travel validator: the bearer token identifies the session and the
Cloudflare visitor-location headers give the coordinates of the current login.
"""

from collections.abc import Mapping
from typing import Optional

from travelguard.models import Coordinates

AUTHORIZATION_HEADER = "Authorization"

# https://developers.cloudflare.com/rules/transform/managed-transforms/reference/#add-visitor-location-headers
CLOUDFLARE_LATITUDE_HEADER = "Cf-Iplatitude"
CLOUDFLARE_LONGITUDE_HEADER = "Cf-Iplongitude"


class HeaderParseError(ValueError):
    """Exception raised when a location header is missing or not a number."""

    def __init__(self, header: str, original_error: Exception):
        super().__init__(f'parsing "{header}" header: {original_error}')
        self.header = header
        self.original_error = original_error


def get_header(headers: Mapping[str, str], name: str) -> str:
    """Case-insensitive header lookup; absent headers read as an empty string."""
    value = headers.get(name)
    if value is not None:
        return value

    lowered = name.lower()
    for key, candidate in headers.items():
        if key.lower() == lowered:
            return candidate

    return ""


def bearer_token_from_header(value: Optional[str]) -> tuple[str, bool]:
    parts = (value or "").split(" ")

    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1], True

    return "", False


def bearer_token_from_headers(headers: Mapping[str, str]) -> tuple[str, bool]:
    return bearer_token_from_header(get_header(headers, AUTHORIZATION_HEADER))


def _parse_coordinate(headers: Mapping[str, str], header: str) -> float:
    raw = get_header(headers, header)
    # reject padding and digit separators, which float() would accept
    if raw != raw.strip() or "_" in raw:
        raise HeaderParseError(header, ValueError(f"invalid syntax: {raw!r}"))

    try:
        return float(raw)
    except ValueError as e:
        raise HeaderParseError(header, e) from e


def coordinates_from_headers(headers: Mapping[str, str]) -> Coordinates:
    """
    Read the login's longitude and latitude from the Cloudflare visitor-location headers.

    Raises:
        HeaderParseError: if either header is absent, empty or not a decimal number.
            Longitude is checked first.
    """
    longitude = _parse_coordinate(headers, CLOUDFLARE_LONGITUDE_HEADER)
    latitude = _parse_coordinate(headers, CLOUDFLARE_LATITUDE_HEADER)

    return Coordinates(longitude=longitude, latitude=latitude)
