from collections.abc import Generator

import pandas as pd
import structlog

from travelguard.config import ValidatorConfig
from travelguard.events import (
    AnalysisEventType,
    CompletionEvent,
    DataLoadingEvent,
    ErrorEvent,
    IdentityCheckedEvent,
    ProcessingEvent,
)
from travelguard.loader import dataframe_to_devices, devices_to_login_events
from travelguard.models import IdentityVerdict
from travelguard.validator import TravelValidator

logger = structlog.get_logger(__name__)


def validate_login_history(
    df: pd.DataFrame, config: ValidatorConfig
) -> Generator[AnalysisEventType, None, list[IdentityVerdict]]:
    logger.info(
        "Starting login history validation",
        total_records=len(df),
        max_allowed_speed_kmh=config.max_allowed_speed_kmh,
        max_events=config.max_events,
    )

    verdicts = []

    try:
        yield DataLoadingEvent("Grouping logins by identity...")

        devices_by_identity = dataframe_to_devices(df)

        if not devices_by_identity:
            logger.error("No identities found in login history", total_records=len(df))
            yield ErrorEvent("No identities found in login history", "DATA_ERROR", "The input contains no valid rows")
            return []

        yield DataLoadingEvent(
            "Grouping completed", total_records=len(df), identities=len(devices_by_identity)
        )

        yield ProcessingEvent("Checking identities for impossible travel...", "travel_validation")

        validator = TravelValidator(config)
        total = len(devices_by_identity)
        violations = 0

        for i, (identity, devices) in enumerate(devices_by_identity.items(), 1):
            events = devices_to_login_events(devices)
            violation = validator.find_violation(events)

            verdict = IdentityVerdict(
                identity=identity,
                is_valid=violation is None,
                login_count=len(events),
                violation=violation,
            )
            verdicts.append(verdict)

            if violation is not None:
                violations += 1
                logger.debug(
                    "Identity failed travel validation",
                    identity=identity,
                    login_count=len(events),
                    distance_km=round(violation.distance_km, 2),
                    speed_kmh=round(violation.speed_kmh, 2) if violation.speed_kmh is not None else None,
                )

            yield IdentityCheckedEvent(
                f"Checked {identity}: {'valid' if verdict.is_valid else 'impossible travel'}",
                identity=identity,
                current=i,
                total=total,
                is_valid=verdict.is_valid,
                login_count=len(events),
            )

        yield ProcessingEvent("Travel validation completed", "travel_validation", 100.0)

        summary = generate_verdict_summary(verdicts)

        logger.info(
            "Login history validation completed",
            identities=total,
            identities_with_violations=violations,
        )

        yield CompletionEvent("Validation completed successfully", summary=summary)

    except Exception as e:
        logger.exception("Validation failed with exception", identities_processed=len(verdicts), total_records=len(df))
        yield ErrorEvent(f"Validation failed: {e!s}", error_type=type(e).__name__, error_details=str(e))
        return []

    return verdicts


def generate_verdict_summary(verdicts: list[IdentityVerdict]) -> dict[str, any]:
    if not verdicts:
        logger.warning("No verdicts provided for summary generation")
        return {}

    total = len(verdicts)
    invalid = sum(1 for verdict in verdicts if not verdict.is_valid)
    logins = sum(verdict.login_count for verdict in verdicts)

    return {
        "total_identities": total,
        "invalid_identities": invalid,
        "invalid_percentage": invalid / total * 100,
        "total_logins": logins,
        "flagged_identities": [verdict.identity for verdict in verdicts if not verdict.is_valid],
    }
