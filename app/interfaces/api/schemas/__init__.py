from .alert import AlertMarkReadRequest, AlertMarkReadResponse, AlertRead
from .checkin import CheckinResponseRead, CheckinTriggerRead, SweepSummaryRead
from .record import (
    CheckinStatsRead,
    HistoryPageRead,
    HistoryRowRead,
    RecordNotesUpdate,
    RecordRead,
)

__all__ = [
    "AlertMarkReadRequest",
    "AlertMarkReadResponse",
    "AlertRead",
    "CheckinResponseRead",
    "CheckinStatsRead",
    "CheckinTriggerRead",
    "HistoryPageRead",
    "HistoryRowRead",
    "RecordNotesUpdate",
    "RecordRead",
    "SweepSummaryRead",
]
