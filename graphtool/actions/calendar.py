"""
Tool: Calendar Actions
Purpose: List events, create invites and check availability for a mailbox

Usage:
    from graphtool.actions.calendar import list_events, create_invite, check_availability

    result = await list_events(ctx)
    result = await create_invite(ctx)
    result = await check_availability(ctx, "colleague@example.com")
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from graphtool.actions import (
    ACTION_GET_EVENTS,
    ACTION_GET_SCHEDULE,
    ACTION_SEND_INVITE,
    STATUS_ERROR,
    STATUS_SUCCESS,
)
from graphtool.actions.context import (
    ActionContext,
    RemoteCallFailed,
    call_remote,
    failure_result,
)
from graphtool.config import DEFAULT_SUBJECT, parse_flexible_time
from graphtool.logging_config import get_logger


logger = get_logger(__name__)

DEFAULT_INVITE_SUBJECT = "It's testing event"
AVAILABILITY_INTERVAL_MINUTES = 60
CHECK_HOUR_UTC = 12

AVAILABILITY_STATUS = {
    "0": "Free",
    "1": "Tentative",
    "2": "Busy",
    "3": "Out of Office",
    "4": "Working Elsewhere",
}


def format_rfc3339(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.isoformat(timespec="seconds").replace("+00:00", "Z")


def _graph_datetime(moment: datetime) -> dict[str, str]:
    utc = moment.astimezone(timezone.utc)
    return {"dateTime": utc.strftime("%Y-%m-%dT%H:%M:%S"), "timeZone": "UTC"}


def add_working_days(start: datetime, days: int) -> datetime:
    """Advance ``days`` weekdays (Mon-Fri), skipping weekends."""
    if days <= 0:
        return start
    result = start
    added = 0
    while added < days:
        result += timedelta(days=1)
        if result.weekday() < 5:
            added += 1
    return result


def interpret_availability(view: str) -> str:
    """Translate the first slot of a Graph availabilityView string."""
    if not view:
        return "Unknown (empty response)"
    code = view[0]
    return AVAILABILITY_STATUS.get(code, f"Unknown ({code})")


# =============================================================================
# getevents
# =============================================================================


async def list_events(ctx: ActionContext) -> dict[str, Any]:
    """List the next ``config.count`` events of the mailbox."""
    mailbox = ctx.config.mailbox
    count = ctx.config.count

    ctx.verbose(f"Calling Graph API: GET /users/{mailbox}/events?$top={count}")

    try:
        events = await call_remote(
            ctx, "listEvents", lambda: ctx.client.list_events(mailbox, top=count)
        )
    except RemoteCallFailed as e:
        error = e.error
        logger.error(f"Error fetching calendar for {mailbox}: {error}")
        ctx.audit.write(ACTION_GET_EVENTS, f"{STATUS_ERROR}: {error}", mailbox, "N/A", "N/A")
        return failure_result(
            ACTION_GET_EVENTS, error, message=f"error fetching calendar for {mailbox}"
        )

    ctx.verbose(f"API response received: {len(events)} events")
    ctx.echo(f"Upcoming events for {mailbox}:")

    items = []
    for event in events:
        subject = event.get("subject") or "N/A"
        event_id = event.get("id") or "N/A"
        items.append({"subject": subject, "id": event_id})
        ctx.echo(f"- {subject} (ID: {event_id})")
        ctx.audit.write(ACTION_GET_EVENTS, STATUS_SUCCESS, mailbox, subject, event_id)

    if not items:
        ctx.echo("No events found.")
        ctx.audit.write(
            ACTION_GET_EVENTS, STATUS_SUCCESS, mailbox, "No events found (0 events)", "N/A"
        )
    else:
        ctx.echo(f"\nTotal events retrieved: {len(items)}")
        ctx.audit.write(
            ACTION_GET_EVENTS,
            STATUS_SUCCESS,
            mailbox,
            f"Retrieved {len(items)} event(s)",
            "SUMMARY",
        )

    return {"success": True, "action": ACTION_GET_EVENTS, "mailbox": mailbox, "events": items}


# =============================================================================
# sendinvite
# =============================================================================


def invite_subject(config) -> str:
    """
    Subject for a new invite: --invite-subject, else --subject, with the
    stock mail subject swapped for the stock invite subject.
    """
    subject = config.invite_subject or config.subject
    if subject == DEFAULT_SUBJECT:
        return DEFAULT_INVITE_SUBJECT
    return subject


def resolve_invite_window(
    start_text: str, end_text: str, now: datetime | None = None
) -> tuple[datetime, datetime]:
    """
    Work out invite start/end times.

    Empty or unparseable start falls back to now; empty or unparseable end
    falls back to start + 1 hour.
    """
    now = now or datetime.now(timezone.utc)

    start = now
    if start_text:
        try:
            start = parse_flexible_time(start_text)
        except ValueError as e:
            logger.warning(f"Error parsing start time: {e}. Using current time instead.")

    end = start + timedelta(hours=1)
    if end_text:
        try:
            end = parse_flexible_time(end_text)
        except ValueError as e:
            logger.warning(f"Error parsing end time: {e}. Using start + 1 hour instead.")

    return start, end


def build_event(subject: str, start: datetime, end: datetime) -> dict[str, Any]:
    return {
        "subject": subject,
        "start": _graph_datetime(start),
        "end": _graph_datetime(end),
    }


async def create_invite(ctx: ActionContext, now: datetime | None = None) -> dict[str, Any]:
    """
    Create a calendar event in the mailbox.

    Event creation is not idempotent, so it gets a single attempt.
    """
    mailbox = ctx.config.mailbox
    subject = invite_subject(ctx.config)

    start, end = resolve_invite_window(ctx.config.start, ctx.config.end, now)
    event = build_event(subject, start, end)

    ctx.verbose(f"Calling Graph API: POST /users/{mailbox}/events")
    ctx.verbose(
        f"Calendar invite - Subject: {subject}, "
        f"Start: {format_rfc3339(start)}, End: {format_rfc3339(end)}"
    )

    status = STATUS_SUCCESS
    event_id = "N/A"
    result: dict[str, Any]
    try:
        created = await call_remote(
            ctx,
            "createInvite",
            lambda: ctx.client.create_event(mailbox, event),
            retry=False,
        )
    except RemoteCallFailed as e:
        logger.error(f"Error creating invite: {e.error}")
        status = f"{STATUS_ERROR}: {e.error}"
        result = failure_result(ACTION_SEND_INVITE, e.error)
    else:
        event_id = created.get("id") or "N/A"
        ctx.echo(f"Calendar invitation created in mailbox: {mailbox}")
        ctx.echo(f"Subject: {subject}")
        ctx.echo(f"Start: {start.strftime('%Y-%m-%d %H:%M:%S %Z')}")
        ctx.echo(f"End: {end.strftime('%Y-%m-%d %H:%M:%S %Z')}")
        ctx.echo(f"Event ID: {event_id}")
        result = {"success": True, "action": ACTION_SEND_INVITE, "event_id": event_id}

    ctx.audit.write(
        ACTION_SEND_INVITE,
        status,
        mailbox,
        subject,
        format_rfc3339(start),
        format_rfc3339(end),
        event_id,
    )
    result.update(
        {
            "mailbox": mailbox,
            "subject": subject,
            "start": format_rfc3339(start),
            "end": format_rfc3339(end),
        }
    )
    return result


# =============================================================================
# getschedule
# =============================================================================


def next_check_window(now: datetime | None = None) -> tuple[datetime, datetime]:
    """12:00-13:00 UTC on the next working day."""
    now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    day = add_working_days(now, 1)
    start = datetime(day.year, day.month, day.day, CHECK_HOUR_UTC, tzinfo=timezone.utc)
    return start, start + timedelta(hours=1)


async def check_availability(
    ctx: ActionContext, recipient: str, now: datetime | None = None
) -> dict[str, Any]:
    """Check whether ``recipient`` is free at noon UTC on the next working day."""
    mailbox = ctx.config.mailbox
    start, end = next_check_window(now)
    check_time = format_rfc3339(start)

    ctx.verbose(
        f"Checking availability for {recipient} on {start:%Y-%m-%d} (12:00-13:00 UTC)"
    )
    request = {
        "schedules": [recipient],
        "startTime": _graph_datetime(start),
        "endTime": _graph_datetime(end),
        "availabilityViewInterval": AVAILABILITY_INTERVAL_MINUTES,
    }

    def _error_row(message: str) -> None:
        ctx.audit.write(
            ACTION_GET_SCHEDULE, f"{STATUS_ERROR}: {message}", mailbox, recipient, check_time, "N/A"
        )

    ctx.verbose(f"Calling Graph API: POST /users/{mailbox}/calendar/getSchedule")
    try:
        schedules = await call_remote(
            ctx, "checkAvailability", lambda: ctx.client.get_schedule(mailbox, request)
        )
    except RemoteCallFailed as e:
        _error_row(str(e.error))
        logger.error(f"Error checking availability for {recipient}: {e.error}")
        return failure_result(
            ACTION_GET_SCHEDULE, e.error, message=f"error checking availability for {recipient}"
        )

    if not schedules:
        _error_row("no schedule information returned")
        return {
            "success": False,
            "action": ACTION_GET_SCHEDULE,
            "error": "no schedule information returned",
        }

    view = schedules[0].get("availabilityView") or ""
    if not view:
        _error_row("empty availability view returned")
        return {
            "success": False,
            "action": ACTION_GET_SCHEDULE,
            "error": "empty availability view returned",
        }

    status = interpret_availability(view)

    ctx.echo("Availability Check Results:")
    ctx.echo("-" * 44)
    ctx.echo(f"Organizer:     {mailbox}")
    ctx.echo(f"Recipient:     {recipient}")
    ctx.echo(f"Check Date:    {start:%Y-%m-%d}")
    ctx.echo("Check Time:    12:00-13:00 UTC")
    ctx.echo(f"Status:        {status}")
    ctx.echo("-" * 44)
    ctx.verbose(f"Availability view: {view} -> {status}")

    ctx.audit.write(ACTION_GET_SCHEDULE, STATUS_SUCCESS, mailbox, recipient, check_time, view)
    return {
        "success": True,
        "action": ACTION_GET_SCHEDULE,
        "mailbox": mailbox,
        "recipient": recipient,
        "check_time": check_time,
        "availability_view": view,
        "status": status,
    }


__all__ = [
    "add_working_days",
    "build_event",
    "check_availability",
    "create_invite",
    "format_rfc3339",
    "interpret_availability",
    "invite_subject",
    "list_events",
    "next_check_window",
    "resolve_invite_window",
]
