"""Line-oriented, human-inspectable session persistence format.

Layout (version 1)::

    driftoff-sessions/v1
    <record>|||<record>|||...

Each record is 13 fields joined by ``:::`` in this fixed order:

    id, date, sleep_start, sleep_end, monitoring_start, monitoring_end,
    total_sleep_min, minutes_to_sleep, disturbances, average_score,
    peak_score, hibernation_activated, camera_verifications

Absent optional timestamps are empty strings.  Text without a header is
read as version 1.  A record that is short or fails to parse is skipped
without affecting its neighbours.
"""

from __future__ import annotations

from datetime import date, datetime

import structlog

from driftoff.analytics.session import Session

logger = structlog.get_logger()

FORMAT_VERSION = 1
HEADER_PREFIX = "driftoff-sessions/v"
RECORD_SEP = "|||"
FIELD_SEP = ":::"
FIELD_COUNT = 13

EMPTY_MARKER = "[]"


class SessionFormatError(ValueError):
    """Raised when the stored text uses an unknown format version."""


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def _fmt_dt(value: datetime | None) -> str:
    return value.isoformat() if value is not None else ""


def _parse_dt(text: str) -> datetime | None:
    return datetime.fromisoformat(text) if text.strip() else None


def _parse_int(text: str) -> int:
    try:
        return int(text)
    except ValueError:
        return 0


def _parse_float(text: str) -> float:
    try:
        return float(text)
    except ValueError:
        return 0.0


def _parse_bool(text: str) -> bool:
    return text == "true"


# ---------------------------------------------------------------------------
# Single record
# ---------------------------------------------------------------------------


def encode_session(session: Session) -> str:
    """Encode one session as a single record."""
    fields = [
        session.id,
        session.date.isoformat(),
        _fmt_dt(session.sleep_start),
        _fmt_dt(session.sleep_end),
        session.monitoring_start.isoformat(),
        _fmt_dt(session.monitoring_end),
        str(session.total_sleep_min),
        str(session.minutes_to_sleep),
        str(session.disturbances),
        repr(float(session.average_score)),
        repr(float(session.peak_score)),
        "true" if session.hibernation_activated else "false",
        str(session.camera_verifications),
    ]
    return FIELD_SEP.join(fields)


def decode_session(record: str) -> Session | None:
    """Decode one record; None if it is short or a required field is unparseable.

    Numeric fields that fail to parse fall back to zero, as they carry no
    identity.  The id, date and monitoring start are required.
    """
    parts = record.split(FIELD_SEP)
    if len(parts) < FIELD_COUNT:
        return None
    try:
        return Session(
            id=parts[0],
            date=date.fromisoformat(parts[1]),
            sleep_start=_parse_dt(parts[2]),
            sleep_end=_parse_dt(parts[3]),
            monitoring_start=datetime.fromisoformat(parts[4]),
            monitoring_end=_parse_dt(parts[5]),
            total_sleep_min=_parse_int(parts[6]),
            minutes_to_sleep=_parse_int(parts[7]),
            disturbances=_parse_int(parts[8]),
            average_score=_parse_float(parts[9]),
            peak_score=_parse_float(parts[10]),
            hibernation_activated=_parse_bool(parts[11]),
            camera_verifications=_parse_int(parts[12]),
        )
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Whole document
# ---------------------------------------------------------------------------


def encode_sessions(sessions: list[Session]) -> str:
    """Encode a list of sessions, prefixed with the version header."""
    body = RECORD_SEP.join(encode_session(s) for s in sessions)
    return f"{HEADER_PREFIX}{FORMAT_VERSION}\n{body}"


def _split_header(text: str) -> tuple[int, str]:
    if not text.startswith(HEADER_PREFIX):
        return FORMAT_VERSION, text
    header, _, body = text.partition("\n")
    version_str = header[len(HEADER_PREFIX):].strip()
    try:
        version = int(version_str)
    except ValueError:
        raise SessionFormatError(f"Unreadable session format header: {header!r}") from None
    return version, body


def decode_sessions(text: str) -> list[Session]:
    """Decode a stored document, skipping malformed records."""
    version, body = _split_header(text)
    if version != FORMAT_VERSION:
        raise SessionFormatError(
            f"Unsupported session format version {version} (expected {FORMAT_VERSION})"
        )

    body = body.strip()
    if not body or body == EMPTY_MARKER:
        return []

    sessions: list[Session] = []
    for i, record in enumerate(body.split(RECORD_SEP)):
        session = decode_session(record.strip())
        if session is None:
            logger.warning("session_record_skipped", index=i)
            continue
        sessions.append(session)
    return sessions
