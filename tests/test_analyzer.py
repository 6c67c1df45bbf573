"""
Tests for validating whole login histories and the events emitted along the way.
"""

import os
import sys
from unittest.mock import patch

import pandas as pd
import pytest

# Add the source directory to Python path
sys.path.append(os.path.join(os.path.dirname(__file__), "..", "src"))

from travelguard.analyzer import generate_verdict_summary, validate_login_history
from travelguard.config import build_config, with_max_allowed_speed
from travelguard.events import (
    CompletionEvent,
    DataLoadingEvent,
    ErrorEvent,
    EventType,
    IdentityCheckedEvent,
    ProcessingEvent,
)
from travelguard.models import IdentityVerdict


def run(stream):
    """Drain a validation generator, returning (events, verdicts)."""
    events = []
    while True:
        try:
            events.append(next(stream))
        except StopIteration as e:
            return events, e.value


@pytest.fixture
def sample_config():
    return build_config(with_max_allowed_speed(10))


@pytest.fixture
def sample_dataframe():
    return pd.DataFrame(
        {
            "identity": ["alice", "alice", "bob", "bob", "bob"],
            "longitude": [37.618423, 37.45912124487777, 37.618423, 11.578439526689374, 0.0],
            "latitude": [55.751244, 55.77524387014726, 55.751244, 48.13609197557769, 0.0],
            "created_at": pd.to_datetime(
                [
                    "2024-03-01T14:00:00Z",
                    "2024-03-01T16:00:00Z",
                    "2024-03-01T14:00:00Z",
                    "2024-03-01T15:00:00Z",
                    "2024-02-01T09:00:00Z",
                ],
                utc=True,
            ),
        }
    )


class TestValidateLoginHistory:
    def test_verdicts_per_identity(self, sample_dataframe, sample_config):
        events, verdicts = run(validate_login_history(sample_dataframe, sample_config))

        by_identity = {verdict.identity: verdict for verdict in verdicts}
        assert by_identity["alice"].is_valid is True
        assert by_identity["alice"].violation is None
        assert by_identity["bob"].is_valid is False
        assert by_identity["bob"].violation.distance_km > 1900

    def test_location_less_records_are_not_counted(self, sample_dataframe, sample_config):
        _, verdicts = run(validate_login_history(sample_dataframe, sample_config))

        bob = next(verdict for verdict in verdicts if verdict.identity == "bob")
        assert bob.login_count == 2

    def test_event_sequence(self, sample_dataframe, sample_config):
        events, _ = run(validate_login_history(sample_dataframe, sample_config))

        assert isinstance(events[0], DataLoadingEvent)
        assert any(isinstance(e, ProcessingEvent) for e in events)
        assert isinstance(events[-1], CompletionEvent)

        checked = [e for e in events if isinstance(e, IdentityCheckedEvent)]
        assert [e.data["identity"] for e in checked] == ["alice", "bob"]
        assert checked[-1].data["progress_percentage"] == 100.0

    def test_completion_summary(self, sample_dataframe, sample_config):
        events, _ = run(validate_login_history(sample_dataframe, sample_config))

        summary = events[-1].data["summary"]
        assert summary["total_identities"] == 2
        assert summary["invalid_identities"] == 1
        assert summary["flagged_identities"] == ["bob"]

    def test_higher_threshold_admits_everyone(self, sample_dataframe):
        _, verdicts = run(validate_login_history(sample_dataframe, build_config(with_max_allowed_speed(5000))))

        assert all(verdict.is_valid for verdict in verdicts)

    def test_empty_history(self, sample_config):
        df = pd.DataFrame(columns=["identity", "longitude", "latitude", "created_at"])

        events, verdicts = run(validate_login_history(df, sample_config))

        assert verdicts == []
        assert events[-1].type == EventType.ERROR
        assert events[-1].data["error_type"] == "DATA_ERROR"

    @patch("travelguard.analyzer.dataframe_to_devices")
    def test_exception_handling(self, mock_devices, sample_dataframe, sample_config):
        mock_devices.side_effect = ValueError("Test exception")

        events, verdicts = run(validate_login_history(sample_dataframe, sample_config))

        assert verdicts == []
        assert isinstance(events[-1], ErrorEvent)
        assert "Test exception" in events[-1].message
        assert events[-1].data["error_type"] == "ValueError"


class TestGenerateVerdictSummary:
    def test_empty(self):
        assert generate_verdict_summary([]) == {}

    def test_counts(self):
        verdicts = [
            IdentityVerdict(identity="a", is_valid=True, login_count=3),
            IdentityVerdict(identity="b", is_valid=False, login_count=4),
            IdentityVerdict(identity="c", is_valid=True, login_count=1),
            IdentityVerdict(identity="d", is_valid=True, login_count=0),
        ]

        summary = generate_verdict_summary(verdicts)

        assert summary["total_identities"] == 4
        assert summary["invalid_identities"] == 1
        assert summary["invalid_percentage"] == 25.0
        assert summary["total_logins"] == 8
        assert summary["flagged_identities"] == ["b"]


def test_identity_verdict_csv_row(sample_dataframe, sample_config):
    _, verdicts = run(validate_login_history(sample_dataframe, sample_config))
    rows = {verdict.identity: verdict.to_csv_row() for verdict in verdicts}

    assert rows["alice"]["is_valid"] == "yes"
    assert rows["alice"]["violation_speed_kmh"] == ""
    assert rows["bob"]["is_valid"] == "no"
    assert rows["bob"]["violation_hours"] == "1.00"
    assert float(rows["bob"]["violation_speed_kmh"]) > 1900
