import os
import sys

import pytest

# Add the source directory to Python path
sys.path.append(os.path.join(os.path.dirname(__file__), "..", "src"))

from travelguard.extractors import (
    CLOUDFLARE_LATITUDE_HEADER,
    CLOUDFLARE_LONGITUDE_HEADER,
    HeaderParseError,
    bearer_token_from_header,
    bearer_token_from_headers,
    coordinates_from_headers,
    get_header,
)
from travelguard.models import Coordinates


@pytest.mark.parametrize(
    "headers, token, found",
    [
        ({"Authorization": "Bearer token"}, "token", True),
        ({"Authorization": "bearer token"}, "token", True),
        ({"Authorization": "beaRer token"}, "token", True),
        ({"Authorization": "BEARER token"}, "token", True),
        ({"authorization": "Bearer token"}, "token", True),
        ({"Authorization": "notbearer token"}, "", False),
        ({"Authorization": "token"}, "", False),
        ({"Authorization": "Bearer token extra"}, "", False),
        ({"Authorization": ""}, "", False),
        ({}, "", False),
    ],
)
def test_bearer_token_from_headers(headers, token, found):
    assert bearer_token_from_headers(headers) == (token, found)


def test_bearer_token_from_missing_header():
    assert bearer_token_from_header(None) == ("", False)


class TestCoordinatesFromHeaders:
    def test_happy_path(self):
        headers = {CLOUDFLARE_LONGITUDE_HEADER: "55.751244", CLOUDFLARE_LATITUDE_HEADER: "37.618423"}

        assert coordinates_from_headers(headers) == Coordinates(longitude=55.751244, latitude=37.618423)

    def test_header_names_are_case_insensitive(self):
        headers = {"cf-iplongitude": "-0.1276", "CF-IPLATITUDE": "51.5072"}

        assert coordinates_from_headers(headers) == Coordinates(longitude=-0.1276, latitude=51.5072)

    @pytest.mark.parametrize(
        "headers, failing_header",
        [
            ({}, CLOUDFLARE_LONGITUDE_HEADER),
            ({CLOUDFLARE_LATITUDE_HEADER: "37.618423"}, CLOUDFLARE_LONGITUDE_HEADER),
            ({CLOUDFLARE_LONGITUDE_HEADER: "55.751244"}, CLOUDFLARE_LATITUDE_HEADER),
            ({CLOUDFLARE_LONGITUDE_HEADER: "", CLOUDFLARE_LATITUDE_HEADER: "37.618423"}, CLOUDFLARE_LONGITUDE_HEADER),
            ({CLOUDFLARE_LONGITUDE_HEADER: "55.751244", CLOUDFLARE_LATITUDE_HEADER: ""}, CLOUDFLARE_LATITUDE_HEADER),
            (
                {CLOUDFLARE_LONGITUDE_HEADER: "55.751244", CLOUDFLARE_LATITUDE_HEADER: "north"},
                CLOUDFLARE_LATITUDE_HEADER,
            ),
        ],
    )
    def test_parse_errors_name_the_header(self, headers, failing_header):
        with pytest.raises(HeaderParseError) as exc_info:
            coordinates_from_headers(headers)

        assert exc_info.value.header == failing_header
        assert f'"{failing_header}"' in str(exc_info.value)
        assert isinstance(exc_info.value.original_error, ValueError)


def test_get_header_missing_is_empty():
    assert get_header({"X-Other": "1"}, "Authorization") == ""


@pytest.mark.parametrize("raw", ["1_0", " 5", "5 ", "\t5.0"])
def test_padded_or_separated_numbers_are_rejected(raw):
    headers = {CLOUDFLARE_LONGITUDE_HEADER: "55.751244", CLOUDFLARE_LATITUDE_HEADER: raw}

    with pytest.raises(HeaderParseError) as exc_info:
        coordinates_from_headers(headers)

    assert exc_info.value.header == CLOUDFLARE_LATITUDE_HEADER


def test_negative_and_exponent_values_are_accepted():
    headers = {CLOUDFLARE_LONGITUDE_HEADER: "-1.5e1", CLOUDFLARE_LATITUDE_HEADER: "-33.8688"}

    assert coordinates_from_headers(headers) == Coordinates(longitude=-15.0, latitude=-33.8688)
