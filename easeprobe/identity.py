"""Identity of the running probe: name, icon, version, host and time settings."""

from __future__ import annotations

import logging
import socket
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from typing import Callable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .common import (
    DEFAULT_ICON_URL,
    DEFAULT_PROG,
    DEFAULT_TIME_FORMAT,
    DEFAULT_TIME_ZONE,
    VERSION,
)

log = logging.getLogger(__name__)


@dataclass
class EaseProbe:
    """Information about the program shown in notifications and pages."""

    name: str
    icon_url: str
    version: str
    host: str
    time_format: str = DEFAULT_TIME_FORMAT
    time_zone: str = DEFAULT_TIME_ZONE
    time_loc: tzinfo = timezone.utc


_instance: EaseProbe | None = None


def _hostname() -> str:
    try:
        return socket.gethostname()
    except OSError as err:
        log.error("Get Hostname Failed: %s", err)
        return "unknown"


def init_ease_probe(name: str, icon: str) -> EaseProbe:
    """Initialise the program identity with the default time settings."""
    return init_ease_probe_with_time(name, icon, DEFAULT_TIME_FORMAT, DEFAULT_TIME_ZONE)


def init_ease_probe_with_time(
    name: str, icon: str, time_format: str, time_zone: str
) -> EaseProbe:
    """Initialise the program identity with the given time format and zone."""
    global _instance
    _instance = EaseProbe(name=name, icon_url=icon, version=VERSION, host=_hostname())
    set_time_zone(time_zone)
    set_time_format(time_format)
    return _instance


def get_ease_probe() -> EaseProbe:
    """Return the program identity, initialising it with defaults if needed."""
    if _instance is None:
        return init_ease_probe(DEFAULT_PROG, DEFAULT_ICON_URL)
    return _instance


def reset_ease_probe() -> EaseProbe | None:
    """Forget the current identity and return it.

    The next access builds a default identity.
    """
    global _instance
    previous, _instance = _instance, None
    if previous is not None:
        log.debug("Identity %r forgotten", previous.name)
    return previous


def get_time_format() -> str:
    """Return the configured time layout."""
    return get_ease_probe().time_format


def set_time_format(time_format: str) -> None:
    """Set the time layout; a blank layout selects the default."""
    if not time_format.strip():
        time_format = DEFAULT_TIME_FORMAT
    get_ease_probe().time_format = time_format


def get_time_location() -> tzinfo:
    """Return the configured time zone."""
    return get_ease_probe().time_loc


def _load_location(name: str) -> tzinfo:
    if name in ("", "UTC"):
        return timezone.utc
    if name == "Local":
        local = datetime.now().astimezone().tzinfo
        return local if local is not None else timezone.utc
    return ZoneInfo(name)


def set_time_zone(time_zone: str) -> None:
    """Set the time zone by name; an unknown name falls back to UTC."""
    try:
        location = _load_location(time_zone)
    except (ZoneInfoNotFoundError, ValueError, OSError) as err:
        log.error("Load TimeZone Failed: %s, use UTC time zone", err)
        time_zone = "UTC"
        location = timezone.utc
    probe = get_ease_probe()
    probe.time_zone = time_zone
    probe.time_loc = location


def footer_string() -> str:
    """Return the footer text, e.g. 'EaseProbe v1.0.0 @ localhost'."""
    probe = get_ease_probe()
    return f"{probe.name} {probe.version} @ {probe.host}"


_MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
_WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def _hour12(moment: datetime) -> int:
    hour = moment.hour % 12
    return 12 if hour == 0 else hour


def _offset_seconds(moment: datetime) -> int:
    delta = moment.utcoffset()
    return 0 if delta is None else int(delta.total_seconds())


def _zone(token: str, offset: int) -> str:
    if token.startswith("Z") and offset == 0:
        return "Z"
    sign = "-" if offset < 0 else "+"
    hours, rest = divmod(abs(offset), 3600)
    minutes, seconds = divmod(rest, 60)
    body = token[1:]
    parts = [f"{hours:02d}"]
    if body in ("0700", "07:00", "070000", "07:00:00"):
        parts.append(f"{minutes:02d}")
    if body in ("070000", "07:00:00"):
        parts.append(f"{seconds:02d}")
    separator = ":" if ":" in body else ""
    return sign + separator.join(parts)


def _zone_name(moment: datetime) -> str:
    name = moment.tzname()
    if name and name[0] not in "+-":
        return name
    return _zone("-0700", _offset_seconds(moment))


_RENDERERS: dict[str, Callable[[datetime], str]] = {
    "January": lambda m: _MONTHS[m.month - 1],
    "Jan": lambda m: _MONTHS[m.month - 1][:3],
    "Monday": lambda m: _WEEKDAYS[m.weekday()],
    "Mon": lambda m: _WEEKDAYS[m.weekday()][:3],
    "MST": _zone_name,
    "2006": lambda m: f"{m.year:04d}",
    "_2006": lambda m: f"_{m.year:04d}",
    "002": lambda m: f"{m.timetuple().tm_yday:03d}",
    "__2": lambda m: f"{m.timetuple().tm_yday:3d}",
    "01": lambda m: f"{m.month:02d}",
    "02": lambda m: f"{m.day:02d}",
    "03": lambda m: f"{_hour12(m):02d}",
    "04": lambda m: f"{m.minute:02d}",
    "05": lambda m: f"{m.second:02d}",
    "06": lambda m: f"{m.year % 100:02d}",
    "15": lambda m: f"{m.hour:02d}",
    "_2": lambda m: f"{m.day:2d}",
    "1": lambda m: str(m.month),
    "2": lambda m: str(m.day),
    "3": lambda m: str(_hour12(m)),
    "4": lambda m: str(m.minute),
    "5": lambda m: str(m.second),
    "PM": lambda m: "PM" if m.hour >= 12 else "AM",
    "pm": lambda m: "pm" if m.hour >= 12 else "am",
}

_ZONE_TOKENS = (
    "Z070000", "Z07:00:00", "Z0700", "Z07:00", "Z07",
    "-070000", "-07:00:00", "-0700", "-07:00", "-07",
)

_TOKENS = (
    "January", "Jan", "Monday", "Mon", "MST",
    "2006", "_2006", "__2", "_2", "002",
    "01", "02", "03", "04", "05", "06",
    "15", "1", "2", "3", "4", "5", "PM", "pm",
    *_ZONE_TOKENS,
)


def _fraction(layout: str, start: int) -> int:
    """Return the end of a fractional-second token at start, or start if none."""
    if layout[start] not in ".," or start + 1 >= len(layout):
        return start
    digit = layout[start + 1]
    if digit not in "09":
        return start
    end = start + 1
    while end < len(layout) and layout[end] == digit:
        end += 1
    if end < len(layout) and layout[end].isdigit():
        return start
    return end


def _render_fraction(moment: datetime, token: str) -> str:
    separator, width, kind = token[0], len(token) - 1, token[1]
    digits = (f"{moment.microsecond:06d}" + "000")[:width]
    if kind == "9":
        digits = digits.rstrip("0")
        return separator + digits if digits else ""
    return separator + digits


def format_time(moment: datetime, layout: str | None = None) -> str:
    """Format moment in the configured zone using a reference-time layout.

    The layout uses the reference time Mon Jan 2 15:04:05 MST 2006; when it
    is omitted the configured time format is used. Naive moments are UTC.
    """
    if layout is None:
        layout = get_time_format()
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(get_time_location())

    pieces: list[str] = []
    position = 0
    while position < len(layout):
        token = next((t for t in _TOKENS if layout.startswith(t, position)), None)
        if token is not None:
            if token in _ZONE_TOKENS:
                pieces.append(_zone(token, _offset_seconds(moment)))
            else:
                pieces.append(_RENDERERS[token](moment))
            position += len(token)
            continue
        end = _fraction(layout, position)
        if end > position:
            pieces.append(_render_fraction(moment, layout[position:end]))
            position = end
            continue
        pieces.append(layout[position])
        position += 1
    return "".join(pieces)