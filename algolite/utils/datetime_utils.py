from datetime import datetime, timezone


def utc_now() -> datetime:
    """
    Get current datetime in UTC.
    """
    return datetime.now(timezone.utc)

def utc_now_iso() -> str:
    """
    Current UTC time the way Algolia reports task timestamps.
    Example: "2025-07-23T12:34:56.789Z"
    """
    return utc_now().isoformat(timespec='milliseconds').replace('+00:00', 'Z')
