from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional, Tuple

# Column order of the appended row. Reordering breaks the sheet's column alignment.
ROW_FIELDS = (
    "timestamp",
    "hostname",
    "ip",
    "country",
    "city",
    "asn",
    "device",
    "os",
    "browser",
    "user_agent",
)


@dataclass(frozen=True)
class VisitorRecord:
    timestamp: str
    hostname: str
    ip: str
    country: str
    city: str
    asn: str
    device: str
    os: str
    browser: str
    user_agent: str
    # Request context, logged but not written to the sheet.
    path: str = "/"
    referrer: str = ""
    cf_ray: str = ""

    def as_row(self) -> List[str]:
        return [getattr(self, name) for name in ROW_FIELDS]


def iso_timestamp(now: Optional[datetime] = None) -> str:
    """UTC ISO-8601 with milliseconds and a trailing Z (e.g. 2024-05-01T12:00:00.000Z)."""
    dt = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _field(body: Mapping[str, Any], key: str, default: str) -> str:
    v = body.get(key)
    if isinstance(v, str) and v.strip():
        return v.strip()
    return default


def client_ip(headers: Mapping[str, str]) -> str:
    if headers.get("cf-connecting-ip"):
        return headers["cf-connecting-ip"].strip()
    xff = headers.get("x-forwarded-for")
    if xff:
        # Left-most is original client in standard practice.
        first = xff.split(",")[0].strip()
        if first:
            return first
    if headers.get("x-real-ip"):
        return headers["x-real-ip"].strip()
    return "unknown"


def build_visitor_record(
    body: Optional[Mapping[str, Any]],
    headers: Mapping[str, str],
    *,
    default_hostname: str,
    now: Optional[datetime] = None,
) -> VisitorRecord:
    """
    Merge client-supplied fields with request headers.

    Missing or empty fields fall back to fixed defaults: device/os/browser,
    ip, country and city become "unknown"; asn, referrer, user agent and
    cf-ray become ""; path becomes "/".
    """
    body = body if isinstance(body, Mapping) else {}
    h = {str(k).lower(): str(v) for k, v in headers.items()}

    return VisitorRecord(
        timestamp=iso_timestamp(now),
        hostname=_field(body, "hostname", default_hostname),
        ip=client_ip(h),
        country=h.get("cf-ipcountry") or "unknown",
        city=h.get("cf-ipcity") or "unknown",
        asn=h.get("cf-asn") or "",
        device=_field(body, "device", "unknown"),
        os=_field(body, "os", "unknown"),
        browser=_field(body, "browser", "unknown"),
        user_agent=h.get("user-agent") or "",
        path=_field(body, "path", "/"),
        referrer=_field(body, "referrer", ""),
        cf_ray=h.get("cf-ray") or "",
    )


_MOBILE = re.compile(r"Mobile|Android|iPhone|iPad|iPod|BlackBerry|IEMobile|Opera Mini", re.IGNORECASE)

_OS_RULES = (
    (re.compile(r"Windows NT"), "Windows"),
    (re.compile(r"Mac OS X"), "macOS"),
    (re.compile(r"Android"), "Android"),
    (re.compile(r"iPhone|iPad"), "iOS"),
    (re.compile(r"Linux"), "Linux"),
    (re.compile(r"CrOS"), "Chrome OS"),
)


def parse_user_agent(user_agent: str) -> Tuple[str, str, str]:
    """
    Coarse (device, os, browser) classification, same rules as the collector page.

    Order matters: iOS user agents contain "Mac OS X", so they report macOS,
    and Android ones contain "Linux" after "Android".
    """
    ua = user_agent or ""
    device = "Mobile" if _MOBILE.search(ua) else "Desktop"

    os_name = "Unknown"
    for pattern, name in _OS_RULES:
        if pattern.search(ua):
            os_name = name
            break

    edge = re.search(r"Edge|Edg", ua) is not None
    opera = "OPR" in ua
    if "Chrome" in ua and not edge and not opera:
        browser = "Chrome"
    elif "Firefox" in ua:
        browser = "Firefox"
    elif "Safari" in ua and "Chrome" not in ua:
        browser = "Safari"
    elif edge:
        browser = "Edge"
    elif opera:
        browser = "Opera"
    else:
        browser = "Unknown"
    return device, os_name, browser
