from collections.abc import Iterable
from pathlib import Path

import pandas as pd
import structlog

from travelguard.models import DeviceRecord, LoginEvent

logger = structlog.get_logger(__name__)

REQUIRED_COLUMNS = ["identity", "longitude", "latitude", "created_at"]


class DataLoadError(Exception):
    """Exception raised when data loading fails."""

    def __init__(self, file_path: Path):
        super().__init__(f"Data file not found: {file_path}")
        self.file_path = file_path


class CsvReadError(Exception):
    """Exception raised when CSV reading fails."""

    def __init__(self, original_error: Exception):
        super().__init__(f"Error reading CSV file: {original_error}")
        self.original_error = original_error


def devices_to_login_events(devices: Iterable[DeviceRecord]) -> list[LoginEvent]:
    """
    Map stored device/session records to login events for the travel validator.

    Records at exactly (0, 0) were saved before locations were captured and are skipped,
    otherwise they would show up as long jumps to the Gulf of Guinea.
    """
    events = []

    for device in devices:
        if not device.has_location:
            continue

        events.append(
            LoginEvent(
                longitude=device.longitude,
                latitude=device.latitude,
                occurred_at=device.created_at,
            )
        )

    return events


def load_login_history(file_path: str) -> pd.DataFrame:
    file_path = Path(file_path)
    if not file_path.exists():
        raise DataLoadError(file_path)

    try:
        df = pd.read_csv(
            file_path,
            dtype={"identity": "string"},
            keep_default_na=True,
        )

        logger.info("Data loaded from CSV", file_path=str(file_path), raw_records=len(df))

        missing_columns = [col for col in REQUIRED_COLUMNS if col not in df.columns]
        if missing_columns:
            raise ValueError(f"missing columns: {', '.join(missing_columns)}")

        df["created_at"] = pd.to_datetime(df["created_at"], utc=True, errors="coerce", format="ISO8601")
        for col in ["longitude", "latitude"]:
            df[col] = pd.to_numeric(df[col], errors="coerce")

        invalid_timestamps = df["created_at"].isna().sum()
        if invalid_timestamps > 0:
            logger.warning(
                "Invalid datetime records detected", invalid_count=invalid_timestamps, file_path=str(file_path)
            )

        df_valid = df.dropna(subset=REQUIRED_COLUMNS).copy()
        df_valid = df_valid[REQUIRED_COLUMNS]

        skipped_rows = len(df) - len(df_valid)

        logger.info(
            "Data processing completed",
            valid_records=len(df_valid),
            skipped_rows=skipped_rows,
            file_path=str(file_path),
        )

        if skipped_rows > 0:
            logger.debug(
                "Records skipped during processing",
                skipped_count=skipped_rows,
                reason="parsing_errors",
                file_path=str(file_path),
            )

    except Exception as e:
        raise CsvReadError(e) from e

    return df_valid


def dataframe_to_devices(df: pd.DataFrame) -> dict[str, list[DeviceRecord]]:
    """Group history rows by identity, keeping file order within each identity."""
    logger.debug("Starting DataFrame to DeviceRecord conversion", total_rows=len(df))

    devices: dict[str, list[DeviceRecord]] = {}

    for row in df.itertuples(index=False):
        record = DeviceRecord(
            longitude=float(row.longitude),
            latitude=float(row.latitude),
            created_at=row.created_at.to_pydatetime(),
        )
        devices.setdefault(str(row.identity), []).append(record)

    logger.debug("DataFrame to DeviceRecord conversion completed", identities=len(devices), total_records=len(df))
    return devices


def validate_data(df: pd.DataFrame) -> dict[str, any]:
    logger.debug("Starting data validation", total_records=len(df))

    stats = {
        "total_records": len(df),
        "identities": 0,
        "records_with_location": 0,
        "records_without_location": 0,
        "date_range": None,
    }

    if df.empty:
        logger.warning("No records provided for validation")
        return stats

    no_location_mask = (df["longitude"] == 0) & (df["latitude"] == 0)

    stats["identities"] = df["identity"].nunique()
    stats["records_without_location"] = int(no_location_mask.sum())
    stats["records_with_location"] = len(df) - stats["records_without_location"]

    min_date = df["created_at"].min()
    max_date = df["created_at"].max()
    if pd.notna(min_date) and pd.notna(max_date):
        stats["date_range"] = (min_date, max_date)

    logger.info(
        "Data validation completed",
        total_records=stats["total_records"],
        identities=stats["identities"],
        records_with_location=stats["records_with_location"],
        records_without_location=stats["records_without_location"],
        date_range_start=stats["date_range"][0].isoformat() if stats["date_range"] else None,
        date_range_end=stats["date_range"][1].isoformat() if stats["date_range"] else None,
    )

    return stats
