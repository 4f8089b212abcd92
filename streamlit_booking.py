"""Booking page - pick a host, a meeting type and an open slot."""

from datetime import date, datetime, time, timedelta

import pytz
import streamlit as st

from models.entities import DAY_NAMES, Invitee
from models.errors import SchedulingError
from services.demo_data import build_services
from services.response_formatter import ResponseFormatter
from services.settings import Settings, configure_logging
from services.timezone_service import TimezoneService

# ============================================================================
# CONFIGURATION
# ============================================================================

settings = Settings.from_env()
configure_logging(settings.log_level)

st.set_page_config(
    page_title="Book a Meeting",
    page_icon="🗓️",
    layout="wide"
)

# ============================================================================
# SERVICE INITIALIZATION
# ============================================================================

@st.cache_resource
def get_services(_cache_version="v1"):
    """Initialize and cache services over the demo store."""
    return build_services(settings)


services = get_services()
store = services.store

if "last_result" not in st.session_state:
    st.session_state.last_result = None

# ============================================================================
# SIDEBAR - HOST AND MEETING TYPE
# ============================================================================

hosts = store.hosts.list_all()
host = st.sidebar.selectbox(
    "Host",
    hosts,
    format_func=lambda h: f"{h.display_name} (@{h.username})"
)
st.sidebar.caption(TimezoneService.get_timezone_display_name(host.timezone))

meeting_types = services.availability.list_meeting_types(host.id, active_only=True)
if not meeting_types:
    st.warning(f"{host.display_name} has no bookable meeting types.")
    st.stop()

meeting_type = st.sidebar.selectbox(
    "Meeting type",
    meeting_types,
    format_func=lambda mt: f"{mt.name} ({mt.duration_minutes} min)"
)

with st.sidebar.expander("Weekly availability"):
    for rule in services.availability.list_weekly_rules(host.id):
        st.write(f"{DAY_NAMES[rule.day_of_week]}: {rule.start_time} - {rule.end_time}")

# ============================================================================
# SLOT PICKER
# ============================================================================

st.title(f"🗓️ Book {meeting_type.name} with {host.display_name}")

col_start, col_days = st.columns(2)
start_day = col_start.date_input("From", value=date.today())
days = col_days.slider("Days to show", min_value=1, max_value=14, value=7)

tz = pytz.timezone(host.timezone)
range_start = tz.localize(datetime.combine(start_day, time.min)).astimezone(pytz.UTC)
range_end = tz.localize(datetime.combine(start_day + timedelta(days=days), time.min)).astimezone(pytz.UTC)

try:
    slots = services.slot_engine.generate_slots(host.id, meeting_type.id, range_start, range_end)
except SchedulingError as e:
    st.markdown(ResponseFormatter.format_rejection(e))
    st.stop()

if not slots:
    st.markdown(ResponseFormatter.format_error(
        "No Available Times",
        "No open slots in this range. Try a later date."
    ))
else:
    grouped = ResponseFormatter.group_slots_by_day(slots)
    heading = st.selectbox("Day", list(grouped.keys()))
    slot = st.radio(
        "Time",
        grouped[heading],
        format_func=lambda s: s.display_label,
        horizontal=True
    )

    with st.form("invitee"):
        name = st.text_input("Your name")
        email = st.text_input("Email")
        phone = st.text_input("Phone (optional)")
        submitted = st.form_submit_button("Confirm booking")

    if submitted:
        try:
            booking = services.admission.admit_booking(
                meeting_type.id,
                Invitee(name=name, email=email, phone=phone),
                slot.instant
            )
            st.session_state.last_result = ResponseFormatter.format_booking_confirmation(
                booking, host, meeting_type
            )
        except SchedulingError as e:
            st.session_state.last_result = ResponseFormatter.format_rejection(e)
            if ResponseFormatter.should_refresh_slots(e):
                st.rerun()

if st.session_state.last_result:
    st.markdown(st.session_state.last_result)

# ============================================================================
# HOST VIEW - UPCOMING BOOKINGS
# ============================================================================

st.divider()
st.subheader("Upcoming bookings")

for booking in store.bookings.list_for_host(host.id):
    if not booking.is_confirmed:
        continue
    when = TimezoneService.instant_to_display_string(
        booking.scheduled_time, host.timezone, "%a %b %d, %I:%M %p"
    )
    col_info, col_reason, col_action = st.columns([3, 2, 1])
    col_info.write(f"**{booking.invitee_name}** · {when} · {booking.duration_minutes} min")
    reason = col_reason.text_input("Reason", key=f"reason_{booking.id}", label_visibility="collapsed")
    if col_action.button("Cancel", key=f"cancel_{booking.id}"):
        try:
            services.admission.cancel_booking(booking.id, host.id, reason)
            st.rerun()
        except SchedulingError as e:
            st.markdown(ResponseFormatter.format_rejection(e))
