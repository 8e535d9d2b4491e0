from __future__ import annotations

from typing import Any, Callable, Dict, List, Sequence

from reactpy import html

from pipeline import (
    STAGE_LABELS,
    agent_glyph,
    format_started,
    format_update_time,
    priority_class,
    stage_label,
    stage_progress,
    summarize_updates,
    update_type_class,
)
from projects import FeedFailed, FeedLoaded, FeedPending, FeedState, Pricing, Project, Update

SKELETON_ROWS = 3
EMPTY_TEXT = "No active projects"
FEED_FAILED_TEXT = "Project feed unavailable"

DASHBOARD_CSS = """
:root {
  color-scheme: light dark;
  --bg: #eef3fb;
  --panel: rgba(255, 255, 255, 0.72);
  --panel-2: rgba(255, 255, 255, 0.45);
  --border: rgba(120, 135, 160, 0.28);
  --text: #0d1526;
  --muted: #5a6680;
  --accent: #0a84ff;
  --radius: 18px;
  --shadow: 0 14px 36px rgba(12, 22, 48, 0.14);
}

@media (prefers-color-scheme: dark) {
  :root {
    --bg: #0b1120;
    --panel: rgba(24, 32, 52, 0.78);
    --panel-2: rgba(38, 48, 72, 0.6);
    --border: rgba(150, 170, 210, 0.2);
    --text: #e8eefb;
    --muted: #9aa7c2;
  }
}

* { box-sizing: border-box; }

body {
  margin: 0;
  background: var(--bg);
  color: var(--text);
  font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, sans-serif;
}

.page { max-width: 1080px; margin: 0 auto; padding: 28px 20px 64px; display: grid; gap: 18px; }
.panel { background: var(--panel); border: 1px solid var(--border); border-radius: var(--radius); box-shadow: var(--shadow); padding: 20px; }
.topbar { display: flex; justify-content: space-between; align-items: center; gap: 12px; flex-wrap: wrap; }
.eyebrow { text-transform: uppercase; letter-spacing: 0.12em; font-size: 11px; color: var(--muted); }
.meta { color: var(--muted); font-size: 13px; }
.list { display: grid; gap: 12px; }
h1 { margin: 4px 0; font-size: 28px; }
h3 { margin: 0; font-size: 18px; }

.project-card { border-left: 4px solid var(--accent); padding: 0; overflow: hidden; }
.project-head {
  width: 100%; text-align: left; border: 0; background: transparent; color: inherit;
  padding: 18px 20px; display: grid; gap: 10px; cursor: pointer; font: inherit;
}
.project-title { display: flex; align-items: center; gap: 10px; flex-wrap: wrap; }
.project-icon { font-size: 22px; }
.summary-line { font-size: 14px; white-space: nowrap; overflow: hidden; text-overflow: ellipsis; }

.stage-progress { display: grid; gap: 6px; }
.stage-track { display: grid; grid-template-columns: repeat(6, 1fr); gap: 4px; }
.stage-seg { height: 6px; border-radius: 999px; }
.progress-label { font-size: 12px; color: var(--muted); }
.progress-label.unknown { color: #d1435b; }

.project-detail { border-top: 1px solid var(--border); padding: 16px 20px 20px; display: grid; gap: 16px; background: var(--panel-2); }
.detail-grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(180px, 1fr)); gap: 10px; }
.detail-grid .label { display: block; font-size: 11px; text-transform: uppercase; color: var(--muted); }

.timeline { display: grid; gap: 8px; border-left: 2px solid var(--border); padding-left: 14px; }
.timeline-entry { display: grid; gap: 2px; }
.timeline-entry .stamp { font-size: 12px; color: var(--muted); }

.tags { display: flex; gap: 6px; flex-wrap: wrap; }
.tag { padding: 2px 8px; border-radius: 999px; border: 1px solid var(--border); font-size: 12px; }

.pill { display: inline-block; padding: 2px 10px; border-radius: 999px; font-size: 12px; font-weight: 600; }
.pill-success { background: rgba(34, 197, 94, 0.16); color: #15803d; }
.pill-danger { background: rgba(239, 68, 68, 0.16); color: #b91c1c; }
.pill-warning { background: rgba(245, 158, 11, 0.18); color: #b45309; }
.pill-info { background: rgba(10, 132, 255, 0.16); color: #0a5fc2; }
.pill-muted { background: rgba(120, 135, 160, 0.18); color: var(--muted); }

.asset-flag.on { color: #15803d; }
.asset-flag.off { color: var(--muted); text-decoration: line-through; }

.skeleton-row { height: 92px; border-radius: var(--radius); background: var(--panel-2); animation: pulse 1.4s ease-in-out infinite; }
@keyframes pulse { 50% { opacity: 0.45; } }

.overview-grid { display: grid; grid-template-columns: repeat(auto-fill, minmax(280px, 1fr)); gap: 16px; }
.overview-card ul { padding-left: 18px; margin: 10px 0 0; }

.auth { max-width: 420px; }
.form { display: grid; gap: 12px; }
.field { display: grid; gap: 4px; }
.input { padding: 9px 12px; border-radius: 10px; border: 1px solid var(--border); background: var(--panel-2); color: inherit; font: inherit; }
.btn { padding: 9px 14px; border-radius: 10px; border: 1px solid var(--border); background: var(--panel); color: inherit; cursor: pointer; font: inherit; }
.btn.primary { background: var(--accent); border-color: var(--accent); color: #fff; }
.btn.link { border: 0; background: transparent; color: var(--accent); padding: 0; }
.btn:disabled { opacity: 0.55; cursor: default; }
.notice { padding: 10px 12px; border-radius: 10px; font-size: 14px; }
.notice.ok { background: rgba(34, 197, 94, 0.14); }
.notice.error { background: rgba(239, 68, 68, 0.14); }
.nav { display: flex; gap: 8px; }
.nav .btn.active { border-color: var(--accent); color: var(--accent); }

@media (prefers-reduced-motion: reduce) {
  .skeleton-row { animation: none; }
}
"""


def render_skeleton():
    return html.div(
        {"class": "list", "aria-busy": "true"},
        *[html.div({"class": "skeleton-row", "key": f"skeleton-{idx}"}) for idx in range(SKELETON_ROWS)],
    )


def render_progress(stage: str):
    progress = stage_progress(stage)
    label_class = "progress-label" if progress["known"] else "progress-label unknown"
    return html.div(
        {"class": "stage-progress"},
        html.div(
            {"class": "stage-track"},
            *[
                html.span(
                    {
                        "key": segment["stage"],
                        "class": f"stage-seg {'reached' if segment['reached'] else 'pending'}",
                        "title": segment["label"],
                        "style": {"background": segment["color"]},
                    }
                )
                for segment in progress["segments"]
            ],
        ),
        html.span({"class": label_class}, progress["label"]),
    )


def render_timeline(updates: Sequence[Update]):
    if not updates:
        return html.div({"class": "meta"}, "No updates yet")
    return html.div(
        {"class": "timeline"},
        *[
            html.div(
                {"class": "timeline-entry", "key": f"update-{idx}"},
                html.div(
                    {"class": "stamp"},
                    f"{agent_glyph(update.agent)} {update.agent or 'unknown'} · {format_update_time(update.timestamp)}",
                ),
                html.div(
                    *([html.span({"class": f"pill {update_type_class(update.type)}"}, update.type), " "] if update.type else []),
                    update.message,
                ),
            )
            for idx, update in enumerate(updates)
        ],
    )


def pricing_labels(pricing: Pricing) -> List[str]:
    # Free and subscription are independent flags; freemium sets both.
    labels: List[str] = []
    if pricing.free:
        labels.append("Free")
    if pricing.subscription:
        labels.append(f"Subscription {pricing.subscription_price}".strip())
    if not labels:
        labels.append("No pricing set")
    return labels


def render_detail_item(label: str, value: Any):
    return html.div(html.span({"class": "label"}, label), html.span(str(value or "") or "n/a"))


def render_assets(project: Project):
    assets = project.assets
    flags = [
        ("Icon", assets.has_icon),
        (f"Screenshots ({len(assets.screenshots)})", assets.has_screenshots),
        ("Demo video", assets.has_demo_video),
        ("Handoff doc", assets.has_handoff_doc),
    ]
    return html.div(
        {"class": "tags"},
        *[
            html.span({"key": label, "class": f"tag asset-flag {'on' if present else 'off'}"}, label)
            for label, present in flags
        ],
    )


def render_metadata(project: Project):
    metadata = project.metadata
    return html.div(
        {"class": "detail-grid"},
        render_detail_item("App Store title", metadata.app_store_title),
        render_detail_item("Subtitle", metadata.subtitle),
        render_detail_item("Category", metadata.category),
        html.div(
            html.span({"class": "label"}, "Pricing"),
            html.div(
                {"class": "tags"},
                *[
                    html.span({"key": f"pricing-{idx}", "class": "tag"}, text)
                    for idx, text in enumerate(pricing_labels(metadata.pricing))
                ],
            ),
        ),
        html.div(
            html.span({"class": "label"}, "Keywords"),
            html.div(
                {"class": "tags"},
                *[html.span({"key": f"keyword-{idx}", "class": "tag"}, word) for idx, word in enumerate(metadata.keywords)],
            )
            if metadata.keywords
            else html.span("n/a"),
        ),
    )


def render_project_detail(project: Project):
    return html.div(
        {"class": "project-detail"},
        html.div(
            {"class": "detail-grid"},
            render_detail_item("Agent", f"{agent_glyph(project.agent)} {project.agent}" if project.agent else ""),
            render_detail_item("Priority", project.priority),
            render_detail_item("Started", format_started(project.started_at)),
            render_detail_item("Brief", project.brief_path),
            render_detail_item("Build", project.build_path),
        ),
        html.div(html.div({"class": "eyebrow"}, "Timeline"), render_timeline(project.updates)),
        html.div(html.div({"class": "eyebrow"}, "Assets"), render_assets(project)),
        html.div(html.div({"class": "eyebrow"}, "Metadata"), render_metadata(project)),
    )


def render_project_card(project: Project, expanded: bool, on_toggle: Callable[[str], None]):
    style: Dict[str, Any] = {}
    if project.color:
        style["borderLeftColor"] = project.color
    return html.section(
        {
            "key": project.id,
            "class": f"panel project-card {'expanded' if expanded else 'collapsed'}",
            "style": style,
        },
        html.button(
            {
                "class": "project-head",
                "type": "button",
                "aria-expanded": "true" if expanded else "false",
                "on_click": lambda event: on_toggle(project.id),
            },
            html.div(
                {"class": "project-title"},
                html.span({"class": "project-icon"}, project.icon or "📦"),
                html.h3(project.name),
                html.span({"class": "pill pill-info"}, stage_label(project.stage)),
                *([html.span({"class": f"pill {priority_class(project.priority)}"}, project.priority)] if project.priority else []),
            ),
            html.div({"class": "meta"}, project.status or project.description),
            html.div({"class": "summary-line"}, summarize_updates(project.updates)),
            render_progress(project.stage),
        ),
        *([render_project_detail(project)] if expanded else []),
    )


def render_project_list(projects: Sequence[Project], expanded_id: str | None, on_toggle: Callable[[str], None]):
    if not projects:
        return html.div({"class": "panel meta empty"}, EMPTY_TEXT)
    return html.div(
        {"class": "list"},
        *[render_project_card(project, project.id == expanded_id, on_toggle) for project in projects],
    )


def render_dashboard(feed: FeedState, expanded_id: str | None, on_toggle: Callable[[str], None]):
    if isinstance(feed, FeedPending):
        body = render_skeleton()
        subtitle = "Loading projects..."
    elif isinstance(feed, FeedFailed):
        body = html.div(
            {"class": "list"},
            render_project_list((), expanded_id, on_toggle),
            html.div({"class": "notice error"}, f"{FEED_FAILED_TEXT}: {feed.reason}"),
        )
        subtitle = FEED_FAILED_TEXT
    else:
        body = render_project_list(feed.projects, expanded_id, on_toggle)
        subtitle = f"{len(feed.projects)} active projects"
    return html.div(
        {"class": "dashboard"},
        html.header(
            {"class": "panel topbar"},
            html.div(
                html.div({"class": "eyebrow"}, "Pipeline"),
                html.h1("Mission Control"),
                html.div({"class": "meta"}, subtitle),
            ),
            html.div({"class": "meta"}, " → ".join(STAGE_LABELS.values())),
        ),
        body,
    )


def render_overview_card(project: Project):
    last_update = project.last_update or summarize_updates(project.updates)
    assigned_to = project.assigned_to or project.agent
    return html.div(
        {"class": "panel overview-card", "key": project.id},
        html.h3(project.name),
        html.p({"class": "meta"}, project.description),
        html.ul(
            html.li(html.strong("Status: "), project.status or "n/a"),
            html.li(html.strong("Last Update: "), last_update),
            html.li(html.strong("Next Step: "), project.next_step or "n/a"),
            *([html.li(html.strong("Assigned To: "), assigned_to)] if assigned_to else []),
        ),
    )


def render_overview(feed: FeedState):
    if isinstance(feed, FeedLoaded) and feed.projects:
        body = html.div({"class": "overview-grid"}, *[render_overview_card(project) for project in feed.projects])
    else:
        body = html.div({"class": "panel meta empty"}, EMPTY_TEXT)
    return html.div(
        {"class": "page"},
        html.header(
            {"class": "panel"},
            html.div({"class": "eyebrow"}, "Overview"),
            html.h1("Mission Control"),
            html.div({"class": "meta"}, "Current projects and progress"),
        ),
        *([html.div({"class": "notice error"}, f"{FEED_FAILED_TEXT}: {feed.reason}")] if isinstance(feed, FeedFailed) else []),
        body,
    )
