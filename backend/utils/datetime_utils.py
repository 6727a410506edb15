from datetime import datetime, date, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def utcnow_naive() -> datetime:
    """UTC now without tzinfo, the form SQLite DateTime columns round-trip."""
    return utcnow().replace(tzinfo=None)


def today_utc() -> date:
    return datetime.now(timezone.utc).date()


def parse_iso_datetime(value: str | datetime | date | None) -> datetime | None:
    """Parse an ISO date or datetime into an aware UTC datetime.

    Accepts a trailing ``Z``, bare dates (midnight UTC) and naive datetimes
    (assumed UTC). Returns None when the value cannot be parsed.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        raw = str(value).strip()
        if not raw:
            return None
        if raw.endswith("Z") or raw.endswith("z"):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            try:
                parsed = datetime.combine(date.fromisoformat(raw[:10]), datetime.min.time())
            except ValueError:
                return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def sort_key_desc_safe(value: str | datetime | None) -> datetime:
    """Sort key that puts unparseable dates last when sorting newest-first."""
    parsed = parse_iso_datetime(value)
    if parsed is None:
        return datetime.min.replace(tzinfo=timezone.utc)
    return parsed


def to_iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
