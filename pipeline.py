from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Sequence

from projects import Update

STAGES = ("research", "brand", "design", "build", "qa", "launch")
STAGE_LABELS = {
    "research": "Research",
    "brand": "Brand",
    "design": "Design",
    "build": "Build",
    "qa": "QA",
    "launch": "Launch",
}
STAGE_COLORS = {
    "research": "#8b5cf6",
    "brand": "#ec4899",
    "design": "#f59e0b",
    "build": "#0a84ff",
    "qa": "#14b8a6",
    "launch": "#22c55e",
}
PENDING_COLOR = "rgba(120, 135, 160, 0.25)"

DEFAULT_AGENT_GLYPH = "🤖"
AGENT_GLYPHS = {
    "ozzy": "🦉",
    "jace": "🕵️",
    "forge": "🔨",
    "pixel": "🎨",
    "scout": "🔭",
    "tester": "🧪",
    "herald": "📣",
}

NO_UPDATES_TEXT = "No updates yet"
SUMMARY_MAX_CHARS = 60
ELLIPSIS = "..."
INVALID_TIME_TEXT = "Invalid time"
UNKNOWN_STAGE_TEXT = "Unknown stage"

# Locale-independent month names for timeline stamps.
MONTH_ABBREVIATIONS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def stage_index(stage: Any) -> int | None:
    """Position of ``stage`` in :data:`STAGES`, or ``None`` when it is not a known stage."""
    for position, name in enumerate(STAGES):
        if stage == name:
            return position
    return None


def stage_label(stage: Any) -> str:
    return STAGE_LABELS.get(str(stage or ""), str(stage or "") or UNKNOWN_STAGE_TEXT)


def stage_progress(stage: Any) -> Dict[str, Any]:
    """Progress view for a project's stage.

    Segments up to and including the resolved stage are ``reached`` and take the
    current stage's colour; the rest are ``pending``. An unknown stage reaches
    nothing and carries no ``N/6`` label.
    """
    index = stage_index(stage)
    color = STAGE_COLORS.get(stage, PENDING_COLOR) if index is not None else PENDING_COLOR
    segments: List[Dict[str, Any]] = []
    for position, name in enumerate(STAGES):
        reached = index is not None and position <= index
        segments.append(
            {
                "stage": name,
                "label": STAGE_LABELS[name],
                "reached": reached,
                "color": color if reached else PENDING_COLOR,
            }
        )
    if index is None:
        label = UNKNOWN_STAGE_TEXT
    else:
        label = f"{index + 1}/{len(STAGES)} stages"
    return {
        "index": index,
        "known": index is not None,
        "label": label,
        "color": color,
        "segments": segments,
    }


def agent_glyph(agent: Any) -> str:
    key = str(agent or "").strip().lower()
    if key in AGENT_GLYPHS:
        return AGENT_GLYPHS[key]
    return DEFAULT_AGENT_GLYPH


def truncate_message(message: Any, limit: int = SUMMARY_MAX_CHARS) -> str:
    text = str(message or "")
    if len(text) <= limit:
        return text
    return text[:limit] + ELLIPSIS


def summarize_updates(updates: Sequence[Update]) -> str:
    """One-line summary of the most recent update.

    The last element is taken as the most recent one; the list is never sorted.
    """
    if not updates:
        return NO_UPDATES_TEXT
    last = updates[-1]
    return f"{agent_glyph(last.agent)} {truncate_message(last.message)}"


def parse_timestamp(value: Any) -> datetime | None:
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_update_time(value: Any) -> str:
    parsed = parse_timestamp(value)
    if parsed is None:
        return INVALID_TIME_TEXT
    month = MONTH_ABBREVIATIONS[parsed.month - 1]
    return f"{month} {parsed.day}, {parsed.hour:02d}:{parsed.minute:02d}"


def format_started(value: Any) -> str:
    parsed = parse_timestamp(value)
    if parsed is None:
        return "Not recorded" if not value else INVALID_TIME_TEXT
    month = MONTH_ABBREVIATIONS[parsed.month - 1]
    return f"{month} {parsed.day}, {parsed.year}"


def update_type_class(value: Any) -> str:
    text = str(value or "").strip().lower()
    if text == "milestone":
        return "pill-success"
    if text == "blocker":
        return "pill-danger"
    if text in {"progress", "handoff"}:
        return "pill-info"
    if text == "note":
        return "pill-warning"
    return "pill-muted"


def priority_class(value: Any) -> str:
    text = str(value or "").strip().lower()
    if text in {"high", "critical", "p0", "p1"}:
        return "pill-danger"
    if text in {"low", "p3"}:
        return "pill-success"
    return "pill-warning"


def toggle_expansion(expanded_id: str | None, project_id: str) -> str | None:
    """Next expansion state after the header of ``project_id`` is clicked.

    ``None`` means every card is collapsed. Clicking the open card collapses it;
    clicking any other card opens that one instead.
    """
    if expanded_id == project_id:
        return None
    return project_id
