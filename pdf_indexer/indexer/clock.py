from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def timestamp(moment: datetime) -> str:
    """Progress Record timestamp format."""
    return moment.strftime("%Y-%m-%d %H:%M:%S")
