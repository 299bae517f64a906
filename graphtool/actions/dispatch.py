"""
Route an action name to its handler.

Usage:
    from graphtool.actions.dispatch import execute_action

    result = await execute_action(ctx)
    if not result["success"]:
        ...
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from graphtool.actions import (
    ACTION_EXPORT_INBOX,
    ACTION_GET_EVENTS,
    ACTION_GET_INBOX,
    ACTION_GET_SCHEDULE,
    ACTION_SEARCH_AND_EXPORT,
    ACTION_SEND_INVITE,
    ACTION_SEND_MAIL,
)
from graphtool.actions.calendar import (
    check_availability,
    create_invite,
    invite_subject,
    list_events,
)
from graphtool.actions.context import ActionContext
from graphtool.actions.export import export_inbox, search_and_export
from graphtool.actions.mail import list_inbox, send_mail
from graphtool.logging_config import get_logger


logger = get_logger(__name__)

BODY_PREVIEW_CHARS = 200


async def _check_availability(ctx: ActionContext) -> dict[str, Any]:
    return await check_availability(ctx, ctx.config.to[0])


HANDLERS: dict[str, Callable[[ActionContext], Awaitable[dict[str, Any]]]] = {
    ACTION_GET_EVENTS: list_events,
    ACTION_SEND_MAIL: send_mail,
    ACTION_SEND_INVITE: create_invite,
    ACTION_GET_INBOX: list_inbox,
    ACTION_GET_SCHEDULE: _check_availability,
    ACTION_EXPORT_INBOX: export_inbox,
    ACTION_SEARCH_AND_EXPORT: search_and_export,
}


def describe_plan(config) -> list[str]:
    """Lines describing what an action would do, for --whatif."""
    lines = [f"Action: {config.action}", f"Mailbox: {config.mailbox}"]

    if config.action in (ACTION_GET_EVENTS, ACTION_GET_INBOX, ACTION_EXPORT_INBOX):
        lines.append(f"Count: {config.count}")
    elif config.action == ACTION_SEND_MAIL:
        to = config.to or ([] if config.cc or config.bcc else [config.mailbox])
        lines.append(f"To: {to}")
        if config.cc:
            lines.append(f"Cc: {config.cc}")
        if config.bcc:
            lines.append(f"Bcc: {config.bcc}")
        lines.append(f"Subject: {config.subject}")
        body = config.body_html or config.body
        if len(body) > BODY_PREVIEW_CHARS:
            body = body[:BODY_PREVIEW_CHARS] + "..."
        lines.append(f"Body Type: {'HTML' if config.body_html else 'Text'}")
        lines.append(f"Body Preview: {body}")
        if config.attachments:
            lines.append(f"Attachments: {len(config.attachments)} file(s)")
            for i, path in enumerate(config.attachments, start=1):
                try:
                    size = Path(path).stat().st_size
                    lines.append(f"  [{i}] {Path(path).name} ({size} bytes)")
                except OSError:
                    lines.append(f"  [{i}] {Path(path).name} (error reading file)")
    elif config.action == ACTION_SEND_INVITE:
        lines.append(f"Subject: {invite_subject(config)}")
        lines.append(f"Start: {config.start or 'now'}")
        lines.append(f"End: {config.end or 'start + 1 hour'}")
    elif config.action == ACTION_GET_SCHEDULE:
        lines.append(f"Recipient: {config.to[0] if config.to else 'N/A'}")
    elif config.action == ACTION_SEARCH_AND_EXPORT:
        lines.append(f"Message ID: {config.message_id}")

    lines.append(f"Max retries: {config.max_retries} (base delay {config.retry_delay_ms}ms)")
    return lines


async def execute_action(ctx: ActionContext) -> dict[str, Any]:
    """
    Run the configured action.

    In whatif mode nothing is sent to the service and no audit rows are
    written; the plan is printed instead.

    Returns:
        dict with "success" plus action-specific fields
    """
    action = ctx.config.action
    handler = HANDLERS.get(action)
    if handler is None:
        return {"success": False, "action": action, "error": f"unknown action: {action}"}

    if ctx.config.whatif:
        plan = describe_plan(ctx.config)
        ctx.echo("========================================")
        ctx.echo("WHATIF MODE - DRY RUN (no changes made)")
        ctx.echo("========================================")
        for line in plan:
            ctx.echo(line)
        ctx.echo("========================================")
        logger.info(f"WhatIf mode: skipped {action}")
        return {"success": True, "action": action, "dry_run": True, "plan": plan}

    logger.debug(f"Executing action {action} for {ctx.config.mailbox}")
    return await handler(ctx)


__all__ = ["HANDLERS", "describe_plan", "execute_action"]
