"""
Minbar — Streamlit UI entry point.
"""

import streamlit as st

# Load .env first so every accessor below sees it
from minbar.utils.config import load_config, load_app_config
load_config()

from minbar.domains.schedule.calendar import CalendarView
from minbar.domains.schedule.events import ScheduleStore
from minbar.domains.sebha.counter import SebhaCounter
from minbar.infrastructure.storage.local_store import JsonFileStore
from minbar.services.community import CommunityService
from minbar.services.listener import (
    build_listener_session,
    install_unload_hook,
    leave_listen_page,
    parse_room_param,
)
from minbar.ui.pages import render_community, render_listen, render_schedule, render_sebha
from minbar.utils.logger import setup_logger, get_logger

config = load_app_config()
setup_logger("minbar", level=config.log_level)
log = get_logger()

st.set_page_config(page_title="Minbar", layout="wide")
st.title("Minbar")


@st.cache_resource
def get_store() -> JsonFileStore:
    return JsonFileStore(config.store_path)


store = get_store()

if "schedule" not in st.session_state:
    schedule = ScheduleStore(store, seed_defaults=True)
    schedule.load()
    st.session_state.schedule = schedule
if "calendar_view" not in st.session_state:
    st.session_state.calendar_view = CalendarView.starting_today()
if "sebha" not in st.session_state:
    st.session_state.sebha = SebhaCounter(store)
if "community" not in st.session_state:
    st.session_state.community = CommunityService.from_config(config)
    st.session_state.posts = {}
    st.session_state.follows = {}

room_id = parse_room_param(st.query_params.get("roomId"))
stream_id = parse_room_param(st.query_params.get("liveStreamId"))

with st.sidebar:
    st.header("Settings")
    page = st.radio("Page", ["Listen", "Schedule", "Sebha", "Community"], key="page")
    st.caption(f"Janus: `{config.janus_server}`")
    st.caption(f"Stream API: `{config.stream_api_base}`")
    st.caption(f"Community API: `{config.social_api_base}`")
    if st.session_state.get("listener") is not None and st.button("Leave stream", use_container_width=True):
        leave_listen_page(st.session_state)
        st.rerun()

if page == "Listen":
    listener = st.session_state.get("listener")
    if listener is None or listener.room_id != (room_id or 0):
        leave_listen_page(st.session_state)
        listener = build_listener_session(config, room_id, stream_id)
        st.session_state.listener = listener
        st.session_state.listener_unload = install_unload_hook(listener)
        log.info("Starting listener for room %s", room_id)
        listener.start()
    render_listen(listener)
    if st.button("Refresh status", key="refresh"):
        listener.refresh_listener_count()
        st.rerun()
else:
    # Any other page unmounts the listener
    leave_listen_page(st.session_state)
    if page == "Schedule":
        render_schedule(st.session_state.calendar_view, st.session_state.schedule)
    elif page == "Sebha":
        render_sebha(st.session_state.sebha)
    else:
        render_community(st.session_state.community, st.session_state.posts, st.session_state.follows)

log.debug("Rendered page %s", page)
