"""
Tool: Mail Export Actions
Purpose: Save mailbox messages as individual JSON files

Messages are written to ``<temp>/export/YYYY-MM-DD/msg_<id>.json``, one file
per message, holding the identifying headers, recipients and body.

Usage:
    from graphtool.actions.export import export_inbox, search_and_export

    result = await export_inbox(ctx)
    result = await search_and_export(ctx)
"""

from __future__ import annotations

import json
import tempfile
from datetime import date
from pathlib import Path
from typing import Any

from graphtool.actions import (
    ACTION_EXPORT_INBOX,
    ACTION_SEARCH_AND_EXPORT,
    STATUS_ERROR,
    STATUS_SUCCESS,
)
from graphtool.actions.context import (
    ActionContext,
    RemoteCallFailed,
    call_remote,
    failure_result,
)
from graphtool.logging_config import get_logger


logger = get_logger(__name__)

EXPORT_SUBDIR = "export"
UNKNOWN_ID = "unknown_id"

# Characters replaced in message IDs before they become file names
_FILENAME_UNSAFE = '<>:"/\\|?*='

_RECIPIENT_FIELDS = (("toRecipients", "to"), ("ccRecipients", "cc"), ("bccRecipients", "bcc"))


def sanitize_filename(name: str) -> str:
    return "".join("_" if ch in _FILENAME_UNSAFE else ch for ch in name)


def create_export_dir(root: Path | None = None, today: date | None = None) -> Path:
    """Create (if needed) and return ``<root>/export/<YYYY-MM-DD>``."""
    root = Path(root) if root is not None else Path(tempfile.gettempdir())
    today = today or date.today()
    directory = root / EXPORT_SUBDIR / today.isoformat()
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def _email_address(address: dict[str, Any] | None) -> dict[str, str]:
    address = address or {}
    return {key: address[key] for key in ("name", "address") if address.get(key)}


def _recipients(recipients: list[dict[str, Any]] | None) -> list[dict[str, str]]:
    return [
        _email_address(r.get("emailAddress"))
        for r in recipients or []
        if r.get("emailAddress")
    ]


def _sender(message: dict[str, Any]) -> dict[str, str] | None:
    address = (message.get("from") or {}).get("emailAddress")
    return _email_address(address) if address else None


def export_record(message: dict[str, Any]) -> dict[str, Any]:
    """The fields of a Graph message that go into its export file."""
    record: dict[str, Any] = {}
    for key in ("id", "internetMessageId", "subject", "receivedDateTime"):
        if message.get(key) is not None:
            record[key] = message[key]

    sender = _sender(message)
    if sender is not None:
        record["from"] = sender

    for source, target in _RECIPIENT_FIELDS:
        if message.get(source) is not None:
            record[target] = _recipients(message[source])

    body = message.get("body")
    if body is not None:
        record["body"] = {
            key: body[key] for key in ("contentType", "content") if body.get(key) is not None
        }
    return record


def message_summary(message: dict[str, Any]) -> dict[str, Any]:
    """Short form of a message for the JSON result document."""
    summary: dict[str, Any] = {}
    for key in ("id", "subject", "receivedDateTime"):
        if message.get(key) is not None:
            summary[key] = message[key]
    sender = _sender(message)
    if sender is not None:
        summary["from"] = sender
    if message.get("toRecipients") is not None:
        summary["toRecipients"] = _recipients(message["toRecipients"])
    return summary


def write_message_export(message: dict[str, Any], directory: Path) -> Path:
    """
    Write one message to ``directory/msg_<id>.json``.

    Raises:
        OSError: The file could not be written
    """
    message_id = message.get("id") or UNKNOWN_ID
    path = Path(directory) / f"msg_{sanitize_filename(message_id)}.json"
    path.write_text(
        json.dumps(export_record(message), indent=2, ensure_ascii=False), encoding="utf-8"
    )
    logger.debug(f"Exported message to {path}")
    return path


# =============================================================================
# exportinbox
# =============================================================================


async def export_inbox(ctx: ActionContext, root: Path | None = None) -> dict[str, Any]:
    """
    Export the newest ``config.count`` Inbox messages.

    A message that cannot be written is logged and skipped; the summary row
    records how many of the fetched messages made it to disk.
    """
    mailbox = ctx.config.mailbox
    count = ctx.config.count

    ctx.verbose(
        f"Calling Graph API: GET /users/{mailbox}/mailFolders/Inbox/messages"
        f"?$top={count}&$orderby=receivedDateTime DESC"
    )

    try:
        messages = await call_remote(
            ctx, "exportInbox", lambda: ctx.client.list_inbox_messages(mailbox, top=count)
        )
    except RemoteCallFailed as e:
        logger.error(f"Error fetching inbox for {mailbox}: {e.error}")
        ctx.audit.write(ACTION_EXPORT_INBOX, f"{STATUS_ERROR}: {e.error}", mailbox, "N/A", "N/A")
        return failure_result(
            ACTION_EXPORT_INBOX, e.error, message=f"error fetching inbox for {mailbox}"
        )

    ctx.verbose(f"API response received: {len(messages)} messages")
    ctx.echo(f"Exporting {len(messages)} messages from inbox for {mailbox}...")

    result: dict[str, Any] = {
        "success": True,
        "action": ACTION_EXPORT_INBOX,
        "mailbox": mailbox,
        "messages": [message_summary(m) for m in messages],
    }

    if not messages:
        ctx.echo("No messages found.")
        ctx.audit.write(
            ACTION_EXPORT_INBOX, STATUS_SUCCESS, mailbox, "No messages found (0 messages)", "N/A"
        )
        result.update({"exported": 0, "export_dir": None})
        return result

    try:
        directory = create_export_dir(root)
    except OSError as e:
        logger.error(f"Failed to create export directory: {e}")
        ctx.audit.write(ACTION_EXPORT_INBOX, f"{STATUS_ERROR}: {e}", mailbox, "N/A", "N/A")
        return failure_result(ACTION_EXPORT_INBOX, e, message="failed to create export directory")

    ctx.echo(f"Export directory: {directory}")

    exported = 0
    for message in messages:
        try:
            write_message_export(message, directory)
        except OSError as e:
            logger.error(f"Error exporting message ID {message.get('id') or UNKNOWN_ID}: {e}")
            continue
        exported += 1

    ctx.echo(f"Successfully exported {exported}/{len(messages)} messages.")
    ctx.audit.write(
        ACTION_EXPORT_INBOX,
        STATUS_SUCCESS,
        mailbox,
        f"Exported {exported}/{len(messages)} messages",
        str(directory),
    )
    result.update({"exported": exported, "export_dir": str(directory)})
    return result


# =============================================================================
# searchandexport
# =============================================================================


async def search_and_export(ctx: ActionContext, root: Path | None = None) -> dict[str, Any]:
    """
    Find messages by Internet Message ID anywhere in the mailbox and export them.

    Usually one message matches; every match is exported. Unlike exportinbox
    a write failure fails the action.
    """
    mailbox = ctx.config.mailbox
    internet_message_id = ctx.config.message_id

    ctx.verbose(
        f"Calling Graph API: GET /users/{mailbox}/messages"
        f"?$filter=internetMessageId eq '{internet_message_id}'"
    )

    try:
        messages = await call_remote(
            ctx,
            "searchAndExport",
            lambda: ctx.client.find_messages(mailbox, internet_message_id),
        )
    except RemoteCallFailed as e:
        logger.error(f"Error searching message for {mailbox}: {e.error}")
        ctx.audit.write(
            ACTION_SEARCH_AND_EXPORT, f"{STATUS_ERROR}: {e.error}", mailbox, "N/A",
            internet_message_id,
        )
        return failure_result(
            ACTION_SEARCH_AND_EXPORT, e.error, message=f"error searching message for {mailbox}"
        )

    ctx.verbose(f"API response received: {len(messages)} messages")

    result: dict[str, Any] = {
        "success": True,
        "action": ACTION_SEARCH_AND_EXPORT,
        "mailbox": mailbox,
        "message_id": internet_message_id,
        "messages": [message_summary(m) for m in messages],
        "exported": 0,
        "export_dir": None,
    }

    if not messages:
        ctx.echo(f"No message found with Internet Message ID: {internet_message_id}")
        ctx.audit.write(
            ACTION_SEARCH_AND_EXPORT, STATUS_SUCCESS, mailbox, "Message not found",
            internet_message_id,
        )
        return result

    try:
        directory = create_export_dir(root)
        ctx.echo(f"Export directory: {directory}")
        for message in messages:
            write_message_export(message, directory)
            ctx.echo(f"Successfully exported message: {message.get('subject') or 'N/A'}")
            ctx.audit.write(
                ACTION_SEARCH_AND_EXPORT, STATUS_SUCCESS, mailbox, "Exported successfully",
                message.get("id") or UNKNOWN_ID,
            )
            result["exported"] += 1
    except OSError as e:
        logger.error(f"Failed to export message: {e}")
        ctx.audit.write(
            ACTION_SEARCH_AND_EXPORT, f"{STATUS_ERROR}: {e}", mailbox, "N/A", internet_message_id
        )
        return failure_result(
            ACTION_SEARCH_AND_EXPORT, e, message="failed to export message",
            exported=result["exported"],
        )

    result["export_dir"] = str(directory)
    return result


__all__ = [
    "create_export_dir",
    "export_inbox",
    "export_record",
    "message_summary",
    "sanitize_filename",
    "search_and_export",
    "write_message_export",
]
