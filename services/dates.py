# services/dates.py
import calendar
from datetime import datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from services.errors import ValidationError


# -------------------------
# datetime helpers
# -------------------------
def utcnow() -> datetime:
    """DB には UTC naive で保存する"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(dt: datetime | None):
    """
    aware / naive を問わず UTC naive に揃える
    """
    if dt is None:
        return None
    if dt.tzinfo is not None and dt.utcoffset() is not None:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def get_zone(tz: str | None) -> ZoneInfo:
    """呼び出し元のタイムゾーン（未指定なら UTC）"""
    if not tz:
        return ZoneInfo("UTC")
    try:
        return ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError(f"Unknown time zone: {tz}")


def local_to_utc(local: datetime, zone: ZoneInfo) -> datetime:
    return local.replace(tzinfo=zone).astimezone(timezone.utc).replace(tzinfo=None)


def utc_to_local(dt: datetime, zone: ZoneInfo) -> datetime:
    return dt.replace(tzinfo=timezone.utc).astimezone(zone).replace(tzinfo=None)


def day_bounds(day, zone: ZoneInfo) -> tuple[datetime, datetime]:
    """
    ローカル暦日の [00:00:00.000, 23:59:59.999] を UTC naive で返す
    """
    start = datetime.combine(day, time.min)
    end = datetime.combine(day, time(23, 59, 59, 999000))
    return local_to_utc(start, zone), local_to_utc(end, zone)


def add_months(dt: datetime, months: int) -> datetime:
    """
    暦月を足す。日が月末を超える場合はその月の末日に寄せる
    (2024-01-31 + 1ヶ月 = 2024-02-29)
    """
    index = dt.month - 1 + months
    year = dt.year + index // 12
    month = index % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def at_nine(dt: datetime, days: int, zone: ZoneInfo) -> datetime:
    """ローカル日付を days 日進めて 09:00:00.000 にする"""
    local = utc_to_local(dt, zone) + timedelta(days=days)
    local = local.replace(hour=9, minute=0, second=0, microsecond=0)
    return local_to_utc(local, zone)
