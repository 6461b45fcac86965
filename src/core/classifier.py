"""Alert classification and rendering (core domain).

Everything here is pure: a raw alert goes in, a category and a rendered
notification come out. Timestamps and markup are added later by the
notifier adapters so the output can be asserted against literal fixtures.
"""

from __future__ import annotations

from typing import List, Tuple

from core.errors import MalformedAlert
from core.models import Alert, AlertCategory, RenderedNotification

TYPE_FIELD = "type"

# Exact feed tags. Anything not listed here is UNKNOWN.
CATEGORY_TAGS = {
    "CHIT_CHAT": AlertCategory.COMMENT,
    "POLICE": AlertCategory.POLICE,
    "POLICEMAN": AlertCategory.POLICE,
    "JAM": AlertCategory.JAM,
    "ACCIDENT": AlertCategory.ACCIDENT,
}

HEADLINES = {
    AlertCategory.POLICE: "📢 Police 🚓",
    AlertCategory.JAM: "📢 Traffic jam 🚗🚕🚙",
    AlertCategory.ACCIDENT: "📢 Accident 🚙💥🚕",
    AlertCategory.UNKNOWN: "🤖 Unknown alert type",
}

# Optional fields shown under the headline for police/jam/accident alerts.
DETAIL_FIELDS = ("subtype", "street", "city", "reportBy")


def resolve_category(tag: object) -> AlertCategory:
    """Map a raw feed tag to its category."""

    if not isinstance(tag, str):
        return AlertCategory.UNKNOWN
    return CATEGORY_TAGS.get(tag, AlertCategory.UNKNOWN)


def _require_text(alert: Alert, field: str) -> str:
    value = alert.get(field)
    if not isinstance(value, str) or not value.strip():
        raise MalformedAlert(f"comment alert is missing '{field}'")
    return value.strip()


def _render_comment(alert: Alert) -> str:
    reporter = _require_text(alert, "reportBy")
    location = _require_text(alert, "location")
    return f"📢 {reporter} left a comment on the map 💭\nLocation 🗺️: {location}"


def _render_details(alert: Alert, headline: str) -> str:
    lines: List[str] = [headline]
    for field in DETAIL_FIELDS:
        value = alert.get(field)
        if value in (None, ""):
            continue
        lines.append(f"{field}: {value}")
    return "\n".join(lines)


def format_alert_fields(alert: Alert) -> str:
    """Dump every field as ``key: value``, one per line."""

    return "\n".join(f"{key}: {value}" for key, value in alert.items())


def classify(alert: Alert) -> Tuple[AlertCategory, RenderedNotification]:
    """Return the category of ``alert`` and its rendered notification.

    Raises MalformedAlert when the alert has no usable type tag, or when a
    comment lacks its reporter or location.
    """

    tag = alert.get(TYPE_FIELD)
    if not isinstance(tag, str) or not tag:
        raise MalformedAlert(f"alert is missing '{TYPE_FIELD}'")

    category = resolve_category(tag)
    if category is AlertCategory.COMMENT:
        text = _render_comment(alert)
    elif category is AlertCategory.UNKNOWN:
        text = f"{HEADLINES[category]}\n{format_alert_fields(alert)}"
    else:
        text = _render_details(alert, HEADLINES[category])

    return category, RenderedNotification(kind=category.value, text=text)


def render_report(peak_users: int) -> RenderedNotification:
    """Summary sent once per report tick with the peak online-user count."""

    return RenderedNotification(kind="report", text=f"{peak_users} wazers online 🚙 🚕 🚚")
