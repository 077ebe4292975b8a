"""Date, text and platform normalization helpers shared by the adapters."""

import re
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional
from zoneinfo import ZoneInfo

from bs4 import BeautifulSoup

from budgetgamer.config import settings


# "Free to keep when you get it before Nov 7 @ 10:00am"
_STEAM_MONTH_FIRST = re.compile(r"before (\w+) (\d+).*?@ (\d+):(\d+)\s*([ap]m)", re.IGNORECASE)
# "Free to keep when you get it before 7 November @ 10:00am"
_STEAM_DAY_FIRST = re.compile(r"before (\d+) (\w+).*?@ (\d+):(\d+)\s*([ap]m)", re.IGNORECASE)

_COUNTDOWN = re.compile(r"(\d+)\s*:\s*(\d+)\s*:\s*(\d+)")
_DAYS_LEFT = re.compile(r"in (\d+) days?", re.IGNORECASE)

PLATFORM_ALIASES = {
    "windows": "windows",
    "win": "windows",
    "pc": "windows",
    "mac": "mac_os",
    "macos": "mac_os",
    "mac_os": "mac_os",
    "osx": "mac_os",
    "linux": "linux",
    "ps4": "ps4",
    "ps5": "ps5",
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def scrape_timezone() -> ZoneInfo:
    """Zone in which wall-clock times scraped from store pages are read."""
    return ZoneInfo(settings.SCRAPE_TIMEZONE)


def _month_number(name: str) -> Optional[int]:
    # "Nov" and "November" both reduce to the abbreviated form
    try:
        return datetime.strptime(name[:3].title(), "%b").month
    except ValueError:
        return None


def parse_steam_end_date(text: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """Parse the promotional end date out of Steam's discount banner.

    Both "before Nov 7 @ 10:00am" and "before 7 November @ 10:00am" are
    understood.  The year is the current year and the wall-clock time is
    read in the scrape timezone.

    Returns:
        Timezone-aware UTC datetime, or None if no date could be found
    """
    if not text:
        return None
    now = now or utcnow()

    match = _STEAM_MONTH_FIRST.search(text)
    if match and _month_number(match.group(1)):
        month_name, day, hour, minute, meridiem = match.groups()
    else:
        match = _STEAM_DAY_FIRST.search(text)
        if not match:
            return None
        day, month_name, hour, minute, meridiem = match.groups()

    month = _month_number(month_name)
    if month is None:
        return None

    hour = int(hour) % 12
    if meridiem.lower() == "pm":
        hour += 12

    zone = scrape_timezone()
    year = now.astimezone(zone).year
    try:
        local = datetime(year, month, int(day), hour, int(minute), tzinfo=zone)
    except ValueError:
        return None
    return local.astimezone(timezone.utc)


def parse_countdown(text: str) -> Optional[timedelta]:
    """Parse an "HH : MM : SS" countdown into a timedelta."""
    if not text:
        return None
    match = _COUNTDOWN.search(text)
    if not match:
        return None
    hours, minutes, seconds = (int(g) for g in match.groups())
    return timedelta(hours=hours, minutes=minutes, seconds=seconds)


def parse_days_remaining(text: str) -> Optional[int]:
    """Read "Ends today" / "(in N days)" style labels as a day count."""
    if not text:
        return None
    if "today" in text.lower():
        return 1
    match = _DAYS_LEFT.search(text)
    if match:
        return int(match.group(1))
    return None


def start_of_month(now: Optional[datetime] = None) -> datetime:
    """Midnight UTC on the first day of ``now``'s month."""
    now = (now or utcnow()).astimezone(timezone.utc)
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def parse_release_date(value: Optional[str]) -> Optional[datetime]:
    """Best-effort parse of a store's release date string."""
    if not value:
        return None
    value = value.strip()
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        parsed = None
        for fmt in ("%d %b, %Y", "%b %d, %Y", "%d %B %Y", "%B %d, %Y", "%d/%m/%Y", "%Y-%m-%d"):
            try:
                parsed = datetime.strptime(value, fmt)
                break
            except ValueError:
                continue
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def normalize_platforms(values: Iterable[str]) -> List[str]:
    """Map store platform names onto the stored vocabulary, keeping order."""
    platforms: List[str] = []
    for value in values:
        tag = PLATFORM_ALIASES.get(str(value).strip().lower().replace(" ", ""))
        if tag and tag not in platforms:
            platforms.append(tag)
    return platforms


def strip_html(value: Optional[str]) -> str:
    """Plain text of an HTML fragment."""
    if not value:
        return ""
    return BeautifulSoup(value, "html.parser").get_text(" ", strip=True)
