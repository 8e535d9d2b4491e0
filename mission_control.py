from __future__ import annotations

import asyncio
import json
import os
from typing import Any, Callable, Dict

from flask import Flask, g, jsonify, redirect, request
from reactpy import component, event, hooks, html
from reactpy.backend.flask import Options, configure
from reactpy.utils import vdom_to_html

import settings
from identity import (
    NOT_CONFIGURED_TEXT,
    SIGN_IN,
    AuthOutcome,
    get_identity_provider,
    submit_credentials,
    toggle_mode,
)
from pipeline import toggle_expansion
from projects import FeedPending, ProjectFeedError, load_feed_state, load_projects, load_projects_payload
from views import DASHBOARD_CSS, render_dashboard, render_overview

SESSION_COOKIE = "sb-access-token"
SESSION_COOKIE_MAX_AGE = 3600

OVERVIEW_PAGE = (
    "<!DOCTYPE html>"
    '<html lang="en"><head><meta charset="utf-8">'
    '<meta name="viewport" content="width=device-width, initial-scale=1">'
    "<title>Mission Control - Overview</title>"
    "<style>{css}</style>"
    "</head><body>{body}</body></html>"
)

app = Flask(__name__)


def bearer_token() -> str | None:
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        token = header[7:].strip()
        if token:
            return token
    return request.cookies.get(SESSION_COOKIE) or None


@app.before_request
def refresh_session():
    g.session = None
    if not request.path.startswith("/api/"):
        return None
    token = bearer_token()
    if not token:
        return None
    try:
        provider = get_identity_provider()
    except RuntimeError:
        app.logger.warning("Session token supplied but the identity provider is not configured")
        return None
    g.session = provider.get_session(token)
    return None


@app.route("/api/projects", methods=["GET"])
def api_projects():
    try:
        payload, _ = load_projects_payload()
    except ProjectFeedError as exc:
        app.logger.exception("Project feed is unavailable")
        return jsonify({"error": str(exc)}), 502
    return jsonify(payload)


@app.route("/api/health", methods=["GET"])
def api_health():
    try:
        projects = load_projects()
    except ProjectFeedError as exc:
        app.logger.exception("Health check could not load the project feed")
        return jsonify({"ok": False, "error": str(exc)})
    return jsonify({"ok": True, "projects": len(projects)})


@app.route("/api/session", methods=["GET"])
def api_session():
    return jsonify({"session": g.get("session")})


@app.route("/auth/session", methods=["POST"])
def store_session():
    body = request.get_json(silent=True) or {}
    token = str(body.get("access_token") or "").strip() if isinstance(body, dict) else ""
    if not token:
        return jsonify({"error": "access_token is required"}), 400
    try:
        provider = get_identity_provider()
    except RuntimeError:
        app.logger.exception("Identity provider is not configured")
        return jsonify({"error": NOT_CONFIGURED_TEXT}), 503

    session = provider.get_session(token)
    if session is None:
        response = jsonify({"error": "Session token was rejected"})
        response.status_code = 401
        response.delete_cookie(SESSION_COOKIE)
        return response

    response = jsonify({"session": session})
    response.set_cookie(
        SESSION_COOKIE,
        token,
        httponly=True,
        max_age=SESSION_COOKIE_MAX_AGE,
        samesite="Lax",
        secure=request.is_secure,
    )
    return response


@app.route("/auth/session", methods=["DELETE"])
def clear_session():
    response = jsonify({"session": None})
    response.delete_cookie(SESSION_COOKIE)
    return response


@app.route("/auth/callback", methods=["GET"])
def auth_callback():
    return redirect("/")


def persist_session_script(access_token: str) -> str:
    """Browser-side call that stores the token as the session cookie."""
    payload = json.dumps({"access_token": access_token}).replace("</", "<\\/")
    return (
        "() => { fetch('/auth/session', {method: 'POST', credentials: 'same-origin', "
        "headers: {'Content-Type': 'application/json'}, body: JSON.stringify(" + payload + ")}); }"
    )


@app.route("/overview", methods=["GET"])
def overview():
    # Server-rendered from the local file on every request.
    feed = load_feed_state(url="")
    return OVERVIEW_PAGE.format(css=DASHBOARD_CSS, body=vdom_to_html(render_overview(feed)))


@component
def Dashboard():
    feed, set_feed = hooks.use_state(FeedPending())
    expanded_id, set_expanded_id = hooks.use_state(None)

    @hooks.use_effect(dependencies=[])
    async def fetch_projects_once() -> None:
        set_feed(await asyncio.to_thread(load_feed_state))

    def handle_toggle(project_id: str) -> None:
        set_expanded_id(lambda current: toggle_expansion(current, project_id))

    return render_dashboard(feed, expanded_id, handle_toggle)


@component
def AuthForm(on_authenticated: Callable[[AuthOutcome], None]):
    mode, set_mode = hooks.use_state(SIGN_IN)
    values, set_values = hooks.use_state({"email": "", "password": ""})
    notice, set_notice = hooks.use_state(None)
    is_busy, set_is_busy = hooks.use_state(False)
    busy_ref = hooks.use_ref(False)

    def set_field_from_event(name: str, event_data: Dict[str, Any]) -> None:
        if busy_ref.current:
            return
        value = event_data.get("target", {}).get("value", "")
        set_values(lambda prev: {**prev, name: value})

    def switch_mode(event_data: Dict[str, Any] | None = None) -> None:
        if busy_ref.current:
            return
        set_notice(None)
        set_mode(toggle_mode)

    def submit() -> AuthOutcome:
        try:
            provider = get_identity_provider()
        except RuntimeError:
            app.logger.exception("Identity provider is not configured")
            return AuthOutcome(ok=False, message=NOT_CONFIGURED_TEXT)
        return submit_credentials(
            provider,
            mode,
            values.get("email", ""),
            values.get("password", ""),
            settings.AUTH_REDIRECT_URL,
        )

    @event(prevent_default=True)
    async def handle_submit(event_data: Dict[str, Any]) -> None:
        if busy_ref.current:
            return
        busy_ref.current = True
        set_is_busy(True)
        try:
            outcome = await asyncio.to_thread(submit)
        finally:
            busy_ref.current = False
            set_is_busy(False)
        set_notice({"ok": outcome.ok, "text": outcome.message})
        if outcome.ok:
            on_authenticated(outcome)

    is_sign_in = mode == SIGN_IN
    return html.section(
        {"class": "panel auth"},
        html.h3("Sign In to Mission Control" if is_sign_in else "Sign Up for Mission Control"),
        *(
            [html.div({"class": f"notice {'ok' if notice['ok'] else 'error'}"}, notice["text"])]
            if notice
            else []
        ),
        html.form(
            {"class": "form", "on_submit": handle_submit},
            html.label(
                {"class": "field"},
                html.span({"class": "meta"}, "Email"),
                html.input(
                    {
                        "class": "input",
                        "type": "email",
                        "name": "email",
                        "required": True,
                        "default_value": values.get("email", ""),
                        "disabled": is_busy,
                        "on_change": lambda event_data: set_field_from_event("email", event_data),
                    }
                ),
            ),
            html.label(
                {"class": "field"},
                html.span({"class": "meta"}, "Password"),
                html.input(
                    {
                        "class": "input",
                        "type": "password",
                        "name": "password",
                        "required": True,
                        "default_value": values.get("password", ""),
                        "disabled": is_busy,
                        "on_change": lambda event_data: set_field_from_event("password", event_data),
                    }
                ),
            ),
            html.button(
                {"class": "btn primary", "type": "submit", "disabled": is_busy},
                ("Signing in..." if is_sign_in else "Signing up...") if is_busy else ("Sign In" if is_sign_in else "Sign Up"),
            ),
        ),
        html.p(
            {"class": "meta"},
            "Don't have an account? " if is_sign_in else "Already have an account? ",
            html.button(
                {"class": "btn link", "type": "button", "disabled": is_busy, "on_click": switch_mode},
                "Sign Up" if is_sign_in else "Sign In",
            ),
        ),
    )


@component
def App():
    session, set_session = hooks.use_state(None)
    show_auth, set_show_auth = hooks.use_state(False)
    reload_token, set_reload_token = hooks.use_state(0)

    def handle_authenticated(outcome: AuthOutcome) -> None:
        if outcome.session:
            set_session(outcome.session)
        # Remounting the dashboard refetches the feed.
        set_reload_token(lambda prev: prev + 1)

    user = (session or {}).get("user") or {}
    account_label = user.get("email") or ("Signed in" if session else "Sign in")
    access_token = (session or {}).get("access_token")

    return html.div(
        {"id": "mission-control-root"},
        html.style(DASHBOARD_CSS),
        *([html.script(persist_session_script(access_token))] if access_token else []),
        html.main(
            {"class": "page", "key": "page"},
            html.nav(
                {"class": "nav"},
                html.a({"class": "btn", "href": "/overview"}, "Overview"),
                html.button(
                    {
                        "class": f"btn {'active' if show_auth else ''}",
                        "type": "button",
                        "on_click": lambda event_data: set_show_auth(lambda prev: not prev),
                    },
                    account_label,
                ),
            ),
            *([AuthForm(handle_authenticated, key="auth-form")] if show_auth else []),
            Dashboard(key=f"dashboard-{reload_token}"),
        ),
    )


configure(
    app,
    App,
    Options(
        head=(
            {"tagName": "title", "children": ["Mission Control"]},
            {
                "tagName": "meta",
                "attributes": {"name": "viewport", "content": "width=device-width, initial-scale=1"},
            },
        )
    ),
)


if __name__ == "__main__":
    app.run(
        host="0.0.0.0",
        port=int(os.environ.get("PORT", "5001")),
        debug=os.environ.get("FLASK_DEBUG", "0") == "1",
    )
