from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union


class EventType(str, Enum):
    DATA_LOADING = "data_loading"
    PROCESSING = "processing"
    IDENTITY_CHECKED = "identity_checked"
    COMPLETION = "completion"
    ERROR = "error"


@dataclass
class AnalysisEvent:
    type: EventType
    timestamp: datetime
    message: str
    data: Optional[dict[str, Any]] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "timestamp": self.timestamp.isoformat(),
            "message": self.message,
            "data": self.data or {},
        }


@dataclass
class DataLoadingEvent(AnalysisEvent):
    def __init__(self, message: str, total_records: Optional[int] = None, identities: Optional[int] = None):
        super().__init__(
            type=EventType.DATA_LOADING,
            timestamp=datetime.now(),
            message=message,
            data={"total_records": total_records, "identities": identities} if total_records is not None else None,
        )


@dataclass
class ProcessingEvent(AnalysisEvent):
    def __init__(self, message: str, step: str, progress: Optional[float] = None):
        super().__init__(
            type=EventType.PROCESSING,
            timestamp=datetime.now(),
            message=message,
            data={"step": step, "progress": progress},
        )


@dataclass
class IdentityCheckedEvent(AnalysisEvent):
    def __init__(self, message: str, identity: str, current: int, total: int, is_valid: bool, login_count: int):
        progress_pct = (current / total * 100) if total > 0 else 0
        super().__init__(
            type=EventType.IDENTITY_CHECKED,
            timestamp=datetime.now(),
            message=message,
            data={
                "identity": identity,
                "current": current,
                "total": total,
                "progress_percentage": round(progress_pct, 1),
                "is_valid": is_valid,
                "login_count": login_count,
            },
        )


@dataclass
class CompletionEvent(AnalysisEvent):
    def __init__(self, message: str, summary: dict):
        super().__init__(type=EventType.COMPLETION, timestamp=datetime.now(), message=message, data={"summary": summary})


@dataclass
class ErrorEvent(AnalysisEvent):
    def __init__(self, message: str, error_type: str, error_details: Optional[str] = None):
        super().__init__(
            type=EventType.ERROR,
            timestamp=datetime.now(),
            message=message,
            data={"error_type": error_type, "error_details": error_details},
        )


AnalysisEventType = Union[
    DataLoadingEvent,
    ProcessingEvent,
    IdentityCheckedEvent,
    CompletionEvent,
    ErrorEvent,
]
