"""Session recording and sleep analytics.

Modules:
    session  -- Session record and the SessionRecorder that builds it
    codec    -- Versioned line-format encode/decode for sessions
    store    -- AnalyticsStore: retention, persistence, summaries
    summary  -- AnalyticsSummary, trend classification, clock averages
    feedback -- User feedback and the adaptive score multiplier
"""

from driftoff.analytics.session import Session, SessionRecorder, finalize_session
from driftoff.analytics.codec import (
    SessionFormatError,
    decode_session,
    decode_sessions,
    encode_session,
    encode_sessions,
)
from driftoff.analytics.summary import (
    AnalyticsSummary,
    SleepTrend,
    average_clock_time,
    build_analytics_summary,
    classify_trend,
)
from driftoff.analytics.store import AnalyticsStore, MIN_SLEEP_DURATION_MIN, RETENTION_DAYS
from driftoff.analytics.feedback import FeedbackStore, UserFeedback, WakeUpFeeling

__all__ = [
    # session
    "Session",
    "SessionRecorder",
    "finalize_session",
    # codec
    "SessionFormatError",
    "decode_session",
    "decode_sessions",
    "encode_session",
    "encode_sessions",
    # summary
    "AnalyticsSummary",
    "SleepTrend",
    "average_clock_time",
    "build_analytics_summary",
    "classify_trend",
    # store
    "AnalyticsStore",
    "MIN_SLEEP_DURATION_MIN",
    "RETENTION_DAYS",
    # feedback
    "FeedbackStore",
    "UserFeedback",
    "WakeUpFeeling",
]
