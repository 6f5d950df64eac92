from app.domain.events.change_record import (
    PROCESSED_BY,
    ChangeRecord,
    ProcessedChangeRecord,
    isoformat_utc,
)

__all__ = [
    "PROCESSED_BY",
    "ChangeRecord",
    "ProcessedChangeRecord",
    "isoformat_utc",
]
