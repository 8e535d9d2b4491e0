from projects import FeedFailed, FeedLoaded, FeedPending, Pricing, parse_project
from tests.factories import make_project_payload
from tests.vdom import classes, find_by_class, iter_nodes, text_of
from views import (
    EMPTY_TEXT,
    FEED_FAILED_TEXT,
    SKELETON_ROWS,
    pricing_labels,
    render_dashboard,
    render_overview,
    render_project_card,
)


def noop(project_id):
    return None


def loaded(*payloads):
    return FeedLoaded(projects=tuple(parse_project(payload) for payload in payloads))


def test_pending_renders_three_skeleton_rows():
    vdom = render_dashboard(FeedPending(), None, noop)
    assert len(find_by_class(vdom, "skeleton-row")) == SKELETON_ROWS == 3
    assert find_by_class(vdom, "project-card") == []


def test_empty_feed_shows_no_active_projects():
    vdom = render_dashboard(FeedLoaded(projects=()), None, noop)
    assert EMPTY_TEXT in text_of(vdom)
    assert find_by_class(vdom, "project-card") == []
    assert find_by_class(vdom, "skeleton-row") == []


def test_failed_feed_renders_empty_state_and_reason():
    vdom = render_dashboard(FeedFailed(reason="Project feed not found: x.json"), None, noop)
    text = text_of(vdom)
    assert EMPTY_TEXT in text
    assert FEED_FAILED_TEXT in text
    assert "x.json" in text
    assert find_by_class(vdom, "project-card") == []
    assert find_by_class(vdom, "skeleton-row") == []


def test_build_stage_progress():
    vdom = render_dashboard(loaded(make_project_payload(stage="build")), None, noop)
    segments = find_by_class(vdom, "stage-seg")

    assert len(segments) == 6
    assert ["reached" in classes(segment) for segment in segments] == [True] * 4 + [False] * 2
    assert text_of(find_by_class(vdom, "progress-label")[0]) == "4/6 stages"


def test_unknown_stage_renders_all_pending_without_count():
    vdom = render_dashboard(loaded(make_project_payload(stage="deploy")), None, noop)
    segments = find_by_class(vdom, "stage-seg")
    label = text_of(find_by_class(vdom, "progress-label")[0])

    assert len(segments) == 6
    assert all("pending" in classes(segment) for segment in segments)
    assert "/6" not in label
    assert label == "Unknown stage"


def test_collapsed_card_shows_last_update_summary():
    vdom = render_dashboard(loaded(make_project_payload()), None, noop)
    summary = text_of(find_by_class(vdom, "summary-line")[0])

    assert summary == "🔨 Widget compiles"
    assert find_by_class(vdom, "timeline-entry") == []
    assert find_by_class(vdom, "project-detail") == []


def test_expanded_card_renders_timeline_in_order():
    vdom = render_dashboard(loaded(make_project_payload()), "focus-timer", noop)
    entries = find_by_class(vdom, "timeline-entry")

    assert len(entries) == 3
    texts = [text_of(entry) for entry in entries]
    assert "Research done" in texts[0]
    assert "Brand kit delivered" in texts[1]
    assert "Widget compiles" in texts[2]
    assert "Feb 27, 12:00" in texts[2]
    assert "🔨" in text_of(find_by_class(vdom, "summary-line")[0])


def test_only_expanded_project_shows_detail():
    vdom = render_dashboard(
        loaded(make_project_payload(id="a", name="A"), make_project_payload(id="b", name="B")),
        "b",
        noop,
    )
    cards = find_by_class(vdom, "project-card")
    details = find_by_class(vdom, "project-detail")

    assert len(cards) == 2
    assert len(details) == 1
    assert "expanded" in classes(cards[1])
    assert "collapsed" in classes(cards[0])


def test_cards_follow_feed_order():
    vdom = render_dashboard(
        loaded(*[make_project_payload(id=name, name=name.upper()) for name in ["z", "m", "a"]]),
        None,
        noop,
    )
    names = [text_of(node) for node in vdom_headings(vdom)]
    assert names == ["Z", "M", "A"]


def vdom_headings(vdom):
    return [node for node in iter_nodes(vdom) if node.get("tagName") == "h3"]


def test_expanded_detail_shows_assets_and_metadata():
    project = parse_project(make_project_payload())
    vdom = render_project_card(project, True, noop)
    text = text_of(vdom)

    on_flags = [text_of(node) for node in find_by_class(vdom, "asset-flag") if "on" in classes(node)]
    off_flags = [text_of(node) for node in find_by_class(vdom, "asset-flag") if "off" in classes(node)]
    assert on_flags == ["Icon", "Screenshots (1)", "Handoff doc"]
    assert off_flags == ["Demo video"]
    assert "Focus Timer: Pomodoro" in text
    assert "Productivity" in text
    assert "pomodoro" in text
    assert "Free" in text
    assert "Subscription $2.99/mo" in text


def test_empty_updates_in_detail():
    project = parse_project(make_project_payload(updates=[]))
    vdom = render_project_card(project, True, noop)
    assert "No updates yet" in text_of(find_by_class(vdom, "summary-line")[0])
    assert find_by_class(vdom, "timeline-entry") == []


def test_invalid_timestamp_in_timeline():
    project = parse_project(
        make_project_payload(updates=[{"timestamp": "not a date", "agent": "ozzy", "message": "hi", "type": "note"}])
    )
    vdom = render_project_card(project, True, noop)
    assert "Invalid time" in text_of(find_by_class(vdom, "timeline-entry")[0])


def test_pricing_labels():
    assert pricing_labels(Pricing(free=True, subscription=True, subscription_price="$1")) == ["Free", "Subscription $1"]
    assert pricing_labels(Pricing(free=True)) == ["Free"]
    assert pricing_labels(Pricing(subscription=True)) == ["Subscription"]
    assert pricing_labels(Pricing()) == ["No pricing set"]


def test_overview_cards():
    feed = loaded(
        make_project_payload(),
        {"id": "legacy", "name": "Legacy", "status": "Blocked", "lastUpdate": "Yesterday", "nextStep": "Ship it"},
    )
    vdom = render_overview(feed)
    cards = find_by_class(vdom, "overview-card")

    assert len(cards) == 2
    first, second = (text_of(card) for card in cards)
    assert "Last Update: 🔨 Widget compiles" in first
    assert "Assigned To: forge" in first
    assert "Last Update: Yesterday" in second
    assert "Next Step: Ship it" in second
    assert "Assigned To" not in second


def test_overview_empty_and_failed():
    assert EMPTY_TEXT in text_of(render_overview(FeedLoaded(projects=())))
    failed = text_of(render_overview(FeedFailed(reason="boom")))
    assert EMPTY_TEXT in failed
    assert "boom" in failed


def test_repeated_tags_get_distinct_keys():
    project = parse_project(make_project_payload(metadata={"keywords": ["focus", "focus"], "pricing": {"free": True}}))
    vdom = render_project_card(project, True, noop)
    keyword_keys = [node.get("key") for node in find_by_class(vdom, "tag") if text_of(node) == "focus"]

    assert len(keyword_keys) == 2
    assert len(set(keyword_keys)) == 2
