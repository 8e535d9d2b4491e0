"""Project feed: record types, JSON parsing and the one-shot loaders."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

import requests

import settings

logger = logging.getLogger(__name__)


class ProjectFeedError(Exception):
    """The project feed could not be read or is not a list of project objects."""


@dataclass(frozen=True)
class Update:
    timestamp: str
    agent: str
    message: str
    type: str = ""


@dataclass(frozen=True)
class Pricing:
    free: bool = False
    subscription: bool = False
    subscription_price: str = ""


@dataclass(frozen=True)
class Assets:
    icon: str = ""
    screenshots: Tuple[str, ...] = ()
    demo_video: str = ""
    handoff_doc: str = ""

    @property
    def has_icon(self) -> bool:
        return bool(self.icon)

    @property
    def has_screenshots(self) -> bool:
        return len(self.screenshots) > 0

    @property
    def has_demo_video(self) -> bool:
        return bool(self.demo_video)

    @property
    def has_handoff_doc(self) -> bool:
        return bool(self.handoff_doc)


@dataclass(frozen=True)
class Metadata:
    app_store_title: str = ""
    subtitle: str = ""
    category: str = ""
    keywords: Tuple[str, ...] = ()
    pricing: Pricing = field(default_factory=Pricing)


@dataclass(frozen=True)
class Project:
    id: str
    name: str
    slug: str = ""
    description: str = ""
    status: str = ""
    stage: str = ""
    agent: str = ""
    started_at: str = ""
    priority: str = ""
    icon: str = ""
    color: str = ""
    brief_path: str = ""
    build_path: str = ""
    updates: Tuple[Update, ...] = ()
    assets: Assets = field(default_factory=Assets)
    metadata: Metadata = field(default_factory=Metadata)
    last_update: str = ""
    next_step: str = ""
    assigned_to: str = ""


@dataclass(frozen=True)
class FeedPending:
    pass


@dataclass(frozen=True)
class FeedLoaded:
    projects: Tuple[Project, ...]


@dataclass(frozen=True)
class FeedFailed:
    reason: str


FeedState = FeedPending | FeedLoaded | FeedFailed


def _pick(raw: Dict[str, Any], *names: str) -> Any:
    for name in names:
        if name in raw and raw[name] is not None:
            return raw[name]
    return None


def _text(raw: Dict[str, Any], *names: str, strip: bool = True) -> str:
    value = _pick(raw, *names)
    if value is None:
        return ""
    return str(value).strip() if strip else str(value)


def _flag(raw: Dict[str, Any], *names: str) -> bool:
    value = _pick(raw, *names)
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _strings(value: Any) -> Tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(str(item).strip() for item in value if item is not None and str(item).strip())


def _mapping(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def parse_update(raw: Dict[str, Any]) -> Update:
    return Update(
        timestamp=_text(raw, "timestamp", "time"),
        agent=_text(raw, "agent"),
        message=_text(raw, "message"),
        type=_text(raw, "type"),
    )


def parse_assets(raw: Dict[str, Any]) -> Assets:
    return Assets(
        icon=_text(raw, "icon"),
        screenshots=_strings(raw.get("screenshots")),
        demo_video=_text(raw, "demoVideo", "demo_video"),
        handoff_doc=_text(raw, "handoffDoc", "handoff_doc"),
    )


def parse_metadata(raw: Dict[str, Any]) -> Metadata:
    pricing = _mapping(raw.get("pricing"))
    return Metadata(
        app_store_title=_text(raw, "appStoreTitle", "app_store_title"),
        subtitle=_text(raw, "subtitle"),
        category=_text(raw, "category"),
        keywords=_strings(raw.get("keywords")),
        pricing=Pricing(
            free=_flag(pricing, "free"),
            subscription=_flag(pricing, "subscription"),
            subscription_price=_text(pricing, "subscriptionPrice", "subscription_price"),
        ),
    )


def parse_project(raw: Dict[str, Any]) -> Project:
    updates = raw.get("updates")
    if updates is not None and not isinstance(updates, list):
        raise ProjectFeedError(f"Project {raw.get('id')!r} has a non-list 'updates' field")
    project_id = _text(raw, "id") or _text(raw, "slug")
    if not project_id:
        raise ProjectFeedError("Project record is missing an 'id'")
    for position, item in enumerate(updates or []):
        if not isinstance(item, dict):
            raise ProjectFeedError(f"Project {project_id!r} update {position} is not an object")
    return Project(
        id=project_id,
        name=_text(raw, "name") or project_id,
        slug=_text(raw, "slug"),
        description=_text(raw, "description"),
        status=_text(raw, "status"),
        stage=_text(raw, "stage", strip=False),
        agent=_text(raw, "agent"),
        started_at=_text(raw, "startedAt", "started_at", "startDate"),
        priority=_text(raw, "priority"),
        icon=_text(raw, "icon"),
        color=_text(raw, "color"),
        brief_path=_text(raw, "briefPath", "brief_path"),
        build_path=_text(raw, "buildPath", "build_path"),
        updates=tuple(parse_update(item) for item in (updates or [])),
        assets=parse_assets(_mapping(raw.get("assets"))),
        metadata=parse_metadata(_mapping(raw.get("metadata"))),
        last_update=_text(raw, "lastUpdate", "last_update"),
        next_step=_text(raw, "nextStep", "next_step"),
        assigned_to=_text(raw, "assignedTo", "assigned_to"),
    )


def parse_projects(payload: Any) -> List[Project]:
    if not isinstance(payload, list):
        raise ProjectFeedError("Project feed must be a JSON list")
    projects: List[Project] = []
    seen_ids = set()
    for position, raw in enumerate(payload):
        if not isinstance(raw, dict):
            raise ProjectFeedError(f"Project entry {position} is not an object")
        project = parse_project(raw)
        if project.id in seen_ids:
            raise ProjectFeedError(f"Duplicate project id {project.id!r}")
        seen_ids.add(project.id)
        projects.append(project)
    return projects


def read_projects_file(path: str | None = None) -> Any:
    """Raw JSON value of the local feed file."""
    path = path or settings.PROJECTS_FILE
    try:
        with open(path, "r", encoding="utf-8") as feed_file:
            return json.load(feed_file)
    except FileNotFoundError as exc:
        raise ProjectFeedError(f"Project feed not found: {path}") from exc
    except OSError as exc:
        raise ProjectFeedError(f"Project feed could not be read: {exc}") from exc
    except ValueError as exc:
        raise ProjectFeedError(f"Project feed is not valid JSON: {exc}") from exc


def fetch_projects_url(url: str, timeout: float | None = None) -> Any:
    """Raw JSON value of a remote feed."""
    try:
        response = requests.get(url, timeout=timeout or settings.FETCH_TIMEOUT_SECONDS)
    except requests.RequestException as exc:
        raise ProjectFeedError(f"Project feed request failed: {exc}") from exc

    if response.status_code >= 400:
        raise ProjectFeedError(f"Project feed returned HTTP {response.status_code}")

    try:
        return response.json()
    except ValueError as exc:
        raise ProjectFeedError("Project feed response is not valid JSON") from exc


def load_projects_payload(path: str | None = None, url: str | None = None) -> Tuple[Any, List[Project]]:
    """Raw feed value from the active source, validated by parsing it."""
    source_url = settings.PROJECTS_URL if url is None else url
    payload = fetch_projects_url(source_url) if source_url else read_projects_file(path)
    return payload, parse_projects(payload)


def load_projects(path: str | None = None, url: str | None = None) -> List[Project]:
    return load_projects_payload(path=path, url=url)[1]


def load_feed_state(path: str | None = None, url: str | None = None) -> FeedState:
    try:
        projects = load_projects(path=path, url=url)
    except ProjectFeedError as exc:
        logger.exception("Failed to load project feed")
        return FeedFailed(reason=str(exc))
    return FeedLoaded(projects=tuple(projects))
