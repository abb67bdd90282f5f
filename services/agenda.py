# services/agenda.py

import logging
from datetime import date, datetime, time, timedelta

import pytz

from calendar_oauth import build_calendar_service

logger = logging.getLogger("agenda.events")

UNTITLED = "Sem Título"


def lookahead_window(days: int, now: datetime, tz):
    """
    [start, end] covering `days` whole local days, starting tomorrow.
    start = tomorrow 00:00:00.000, end = (tomorrow + days - 1) 23:59:59.999
    """
    days = max(int(days), 1)
    today = now.astimezone(tz).date()

    first_day = today + timedelta(days=1)
    last_day = first_day + timedelta(days=days - 1)

    start = tz.localize(datetime.combine(first_day, time.min))
    end = tz.localize(datetime.combine(last_day, time(23, 59, 59, 999000)))
    return start, end


def _event_start(event: dict, tz) -> datetime | None:
    start = event.get("start") or {}

    if start.get("dateTime"):
        # Python < 3.11 does not accept the 'Z' suffix
        value = start["dateTime"].replace("Z", "+00:00")
        return datetime.fromisoformat(value).astimezone(tz)

    if start.get("date"):
        # All-day events: midnight of that day in the clinic zone
        return tz.localize(datetime.combine(date.fromisoformat(start["date"]), time.min))

    return None


def format_event(event: dict, tz) -> dict:
    start = _event_start(event, tz)
    return {
        "titulo": event.get("summary") or UNTITLED,
        "data": start.strftime("%d/%m às %H:%M") if start else "",
    }


def list_events(credentials, days: int, tz_name: str, now: datetime | None = None) -> list[dict]:
    """
    Every event of the primary calendar in the look-ahead window,
    ordered by start time. No filtering: the front end decides what to hide.
    """
    tz = pytz.timezone(tz_name)
    now = now or datetime.now(tz)
    start, end = lookahead_window(days, now, tz)

    service = build_calendar_service(credentials)

    items = []
    page_token = None
    while True:
        params = {
            "calendarId": "primary",
            "timeMin": start.isoformat(),
            "timeMax": end.isoformat(),
            "singleEvents": True,
            "orderBy": "startTime",
        }
        if page_token:
            params["pageToken"] = page_token

        res = service.events().list(**params).execute()
        items.extend(res.get("items", []))

        page_token = res.get("nextPageToken")
        if not page_token:
            break

    logger.info(f"Fetched {len(items)} events | {start.date()} -> {end.date()}")

    return [format_event(e, tz) for e in items]
