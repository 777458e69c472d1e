"""Streamlit rendering for the listen, schedule, sebha and community pages.

Pure formatting helpers sit at the top so they can be tested without a
running Streamlit script.
"""

from __future__ import annotations

from typing import Any

import streamlit as st

from minbar.domains.live.session import ListenerSession, ListenerSnapshot, ListenerStatus
from minbar.domains.schedule.calendar import CalendarDay, CalendarView
from minbar.domains.schedule.events import DEFAULT_COLORS, EventItem, ScheduleStore
from minbar.domains.sebha.counter import BEADS, DHIKRS, SebhaCounter
from minbar.domains.social.optimistic import CommandOutcome, FollowState, PostState
from minbar.services.community import CommunityService
from minbar.utils.logger import get_logger

logger = get_logger()

WEEKDAYS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]

_STATUS_BADGES = {
    ListenerStatus.IDLE: "⚪ Idle",
    ListenerStatus.CONNECTING: "🟡 Connecting",
    ListenerStatus.LIVE: "🔴 LIVE",
    ListenerStatus.ENDED: "⚫ Ended",
}


def status_badge(status: ListenerStatus) -> str:
    return _STATUS_BADGES.get(status, str(status))


def listener_caption(snap: ListenerSnapshot) -> str:
    """One line under the player: live listeners while on air, total views once ended."""
    if snap.status == ListenerStatus.ENDED:
        return f"{snap.total_views} total views"
    if snap.status == ListenerStatus.LIVE:
        return f"{snap.listener_count} listening now"
    return snap.status_text


def day_label(day: CalendarDay, events: list[EventItem]) -> str:
    """Compact cell text: day number, hijri day, and an event dot count."""
    text = str(day.date.day)
    if day.hijri is not None:
        text += f" · {day.hijri.day}"
    if events:
        text += " " + "•" * min(len(events), 3)
    return text


def event_line(event: EventItem) -> str:
    prefix = f"{event.time} " if event.time else ""
    marker = "🕌 " if event.is_khotba else ""
    return f"{marker}{prefix}{event.title}"


def like_label(post: PostState) -> str:
    heart = "❤️" if post.liked else "🤍"
    return f"{heart} {post.like_count}"


def follow_label(state: FollowState) -> str:
    action = "Unfollow" if state.following else "Follow"
    return f"{action} ({state.follower_count} followers)"


def bead_row(counter: SebhaCounter, width: int = 33) -> str:
    """Progress through the 99-bead string, scaled to `width` characters."""
    filled = (counter.bead_index * width) // BEADS
    return "●" * filled + "○" * (width - filled)


# --- listen ---

def render_listen(session: ListenerSession) -> None:
    snap = session.snapshot()
    info: Any = snap.stream_info
    if info is not None:
        st.subheader(info.topic)
        st.caption(f"{info.mosque_name} · {info.preacher_name}")
    st.markdown(f"**{status_badge(snap.status)}** — {snap.status_text}")
    st.caption(listener_caption(snap))

    if snap.last_error:
        with st.expander("Error details"):
            st.code(snap.last_error, language="text")

    if snap.status == ListenerStatus.ENDED:
        st.info("The broadcast has ended. Jazakum Allahu khayran for listening.")
        return

    col1, col2 = st.columns([1, 1])
    with col1:
        if snap.show_play_button and st.button("▶️ Tap to play", key="manual_play", use_container_width=True):
            if not session.manual_play():
                st.warning("Playback still blocked, try again.")
            st.rerun()
    with col2:
        label = "🔇 Unmute" if snap.muted else "🔊 Mute"
        if st.button(label, key="toggle_mute", use_container_width=True, disabled=not snap.subscribed):
            session.toggle_mute()
            st.rerun()
    volume = st.slider("Volume", 0.0, 1.0, float(snap.volume), 0.05, key="volume")
    if abs(volume - snap.volume) > 1e-6:
        session.set_volume(volume)


# --- schedule ---

def render_schedule(view: CalendarView, store: ScheduleStore) -> None:
    nav = st.columns([1, 3, 1, 1])
    with nav[0]:
        if st.button("◀", key="cal_prev"):
            view.select_prev()
            st.rerun()
    with nav[1]:
        st.markdown(f"### {view.month_name}")
    with nav[2]:
        if st.button("▶", key="cal_next"):
            view.select_next()
            st.rerun()
    with nav[3]:
        if st.button("Today", key="cal_today"):
            view.go_to_today()
            st.rerun()

    view_type = st.radio("View", ["monthly", "weekly", "daily"], horizontal=True,
                         index=["monthly", "weekly", "daily"].index(view.view_type), key="cal_view")
    if view_type != view.view_type:
        view.view_type = view_type
        st.rerun()

    rows = view.grid()
    if view.view_type != "daily":
        header = st.columns(7)
        for col, name in zip(header, WEEKDAYS):
            col.caption(name)
    for r, row in enumerate(rows):
        cols = st.columns(len(row))
        for col, day in zip(cols, row):
            label = day_label(day, store.events_for(day.iso))
            kind = "primary" if day.iso == view.selected_iso else "secondary"
            if col.button(label, key=f"day_{r}_{day.iso}", type=kind, disabled=not day.in_current_month
                          and view.view_type == "monthly", use_container_width=True):
                view.select(day.iso)
                st.rerun()

    st.divider()
    st.markdown(f"#### {view.selected_iso}")
    for event in store.events_for(view.selected_iso):
        c1, c2 = st.columns([5, 1])
        c1.write(event_line(event))
        if not event.is_khotba and c2.button("🗑️", key=f"del_{event.id}"):
            store.delete_event(view.selected_iso, event.id)
            st.rerun()

    with st.form("add_event", clear_on_submit=True):
        title = st.text_input("Title")
        time = st.text_input("Time (optional)")
        color = st.selectbox("Color", DEFAULT_COLORS)
        if st.form_submit_button("Add event"):
            if store.add_event(view.selected_iso, title, time=time, color=color) is None:
                st.warning("Please enter a title.")
            else:
                st.rerun()


# --- sebha ---

def render_sebha(counter: SebhaCounter) -> None:
    keys = list(DHIKRS)
    choice = st.selectbox(
        "Dhikr",
        keys,
        index=keys.index(counter.selected),
        format_func=lambda k: DHIKRS[k].transliteration,
        key="dhikr",
    )
    if choice != counter.selected:
        counter.select(choice)

    d = counter.dhikr
    st.markdown(f"## {d.arabic}")
    st.caption(f"{d.transliteration} — {d.meaning}")
    st.metric("Count", counter.count, help=f"Lifetime total: {counter.total}")
    st.text(bead_row(counter))

    c1, c2, c3 = st.columns([2, 1, 1])
    if c1.button("📿 Count", key="sebha_count", use_container_width=True):
        counter.increment()
        st.rerun()
    if c2.button("Reset", key="sebha_reset", use_container_width=True):
        counter.reset()
        st.rerun()
    if c3.button("Reset all", key="sebha_reset_all", use_container_width=True):
        counter.reset_all()
        st.rerun()


# --- community ---

def _report(outcome: CommandOutcome) -> None:
    """Rerun on success; a failed command has already rolled back, so just say so."""
    if outcome.ok:
        st.rerun()
    st.error(f"Could not reach the community service: {outcome.error}")


def render_community(service: CommunityService, posts: dict[str, PostState], follows: dict[str, FollowState]) -> None:
    """Like, comment and follow by id. View state lives in the dicts so it survives reruns."""
    post_id = st.text_input("Post ID", key="community_post").strip()
    if post_id:
        post = posts.setdefault(post_id, PostState(post_id=post_id))
        if st.button(like_label(post), key=f"like_{post_id}"):
            _report(service.toggle_like(post))
        with st.form(f"comment_{post_id}", clear_on_submit=True):
            text = st.text_input("Comment")
            if st.form_submit_button("Send"):
                _report(service.add_comment(post, text))
        for c in post.comments:
            suffix = " (sending...)" if c.get("pending") else ""
            st.write(f"{c.get('content', '')}{suffix}")

    st.divider()
    user_id = st.text_input("User ID", key="community_user").strip()
    if user_id:
        state = follows.setdefault(user_id, FollowState(user_id=user_id))
        if st.button(follow_label(state), key=f"follow_{user_id}"):
            _report(service.toggle_follow(state))
