"""
Tool: Mail Actions
Purpose: Send mail and list the newest inbox messages for a mailbox

Usage:
    from graphtool.actions.mail import send_mail, list_inbox

    result = await send_mail(ctx)
    result = await list_inbox(ctx)
"""

from __future__ import annotations

import base64
import mimetypes
from datetime import datetime
from pathlib import Path
from typing import Any

from graphtool.actions import ACTION_GET_INBOX, ACTION_SEND_MAIL, STATUS_ERROR, STATUS_SUCCESS
from graphtool.actions.context import (
    ActionContext,
    RemoteCallFailed,
    call_remote,
    failure_result,
)
from graphtool.logging_config import get_logger


logger = get_logger(__name__)

FILE_ATTACHMENT_TYPE = "#microsoft.graph.fileAttachment"
DEFAULT_CONTENT_TYPE = "application/octet-stream"
RECEIVED_FORMAT = "%Y-%m-%d %H:%M:%S"


def create_recipients(addresses: list[str]) -> list[dict[str, Any]]:
    return [{"emailAddress": {"address": address}} for address in addresses]


def create_file_attachments(paths: list[str]) -> list[dict[str, Any]]:
    """
    Read files into Graph fileAttachment payloads.

    Files that cannot be read are skipped with a warning; the mail is still
    sent with whatever could be attached.
    """
    attachments = []
    for raw_path in paths:
        path = Path(raw_path)
        try:
            content = path.read_bytes()
        except OSError as e:
            logger.warning(f"Could not read attachment {raw_path}: {e}")
            continue

        content_type = mimetypes.guess_type(path.name)[0] or DEFAULT_CONTENT_TYPE
        attachments.append(
            {
                "@odata.type": FILE_ATTACHMENT_TYPE,
                "name": path.name,
                "contentType": content_type,
                "contentBytes": base64.b64encode(content).decode("ascii"),
            }
        )
        logger.debug(f"Attached {path.name} ({content_type}, {len(content)} bytes)")
    return attachments


def build_message(
    subject: str,
    text_body: str,
    html_body: str,
    to: list[str],
    cc: list[str],
    bcc: list[str],
    attachments: list[dict[str, Any]],
) -> dict[str, Any]:
    """Assemble a Graph message resource; an HTML body wins over the text one."""
    if html_body:
        body = {"contentType": "HTML", "content": html_body}
    else:
        body = {"contentType": "Text", "content": text_body}

    message: dict[str, Any] = {"subject": subject, "body": body}
    if to:
        message["toRecipients"] = create_recipients(to)
    if cc:
        message["ccRecipients"] = create_recipients(cc)
    if bcc:
        message["bccRecipients"] = create_recipients(bcc)
    if attachments:
        message["attachments"] = attachments
    return message


# =============================================================================
# sendmail
# =============================================================================


async def send_mail(ctx: ActionContext) -> dict[str, Any]:
    """
    Send one message from the configured mailbox.

    Sending is not idempotent, so the call is made exactly once. With no
    recipients at all the message goes to the sending mailbox itself.
    """
    config = ctx.config
    mailbox = config.mailbox
    to, cc, bcc = list(config.to), list(config.cc), list(config.bcc)
    if not to and not cc and not bcc:
        to = [mailbox]

    body_type = "HTML" if config.body_html else "Text"
    ctx.verbose(f"Email body type: {body_type}")

    attachments = create_file_attachments(config.attachments)
    if attachments:
        ctx.verbose(f"Attachments added: {len(attachments)} file(s)")

    message = build_message(
        config.subject, config.body, config.body_html, to, cc, bcc, attachments
    )

    ctx.verbose(f"Calling Graph API: POST /users/{mailbox}/sendMail")
    ctx.verbose(f"Email details - To: {to}, CC: {cc}, BCC: {bcc}")

    status = STATUS_SUCCESS
    result: dict[str, Any]
    try:
        await call_remote(
            ctx, "sendEmail", lambda: ctx.client.send_mail(mailbox, message), retry=False
        )
    except RemoteCallFailed as e:
        logger.error(f"Error sending mail: {e.error}")
        status = f"{STATUS_ERROR}: {e.error}"
        result = failure_result(ACTION_SEND_MAIL, e.error)
    else:
        ctx.echo(f"Email sent successfully from {mailbox}.")
        ctx.echo(f"To: {to}")
        ctx.echo(f"Cc: {cc}")
        ctx.echo(f"Bcc: {bcc}")
        ctx.echo(f"Subject: {config.subject}")
        ctx.echo(f"Body Type: {body_type}")
        if attachments:
            ctx.echo(f"Attachments: {len(attachments)} file(s)")
        result = {"success": True, "action": ACTION_SEND_MAIL}

    ctx.audit.write(
        ACTION_SEND_MAIL,
        status,
        mailbox,
        "; ".join(to),
        "; ".join(cc),
        "; ".join(bcc),
        config.subject,
        body_type,
        str(len(config.attachments)),
    )
    result.update(
        {
            "mailbox": mailbox,
            "to": to,
            "cc": cc,
            "bcc": bcc,
            "subject": config.subject,
            "body_type": body_type,
            "attachments": len(attachments),
        }
    )
    return result


# =============================================================================
# getinbox
# =============================================================================


def _format_received(value: str | None) -> str:
    if not value:
        return "N/A"
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime(RECEIVED_FORMAT)
    except ValueError:
        return value


def summarize_message(message: dict[str, Any]) -> dict[str, str]:
    """Flatten a Graph message into subject/from/to/received strings."""
    sender = ((message.get("from") or {}).get("emailAddress") or {}).get("address") or "N/A"
    recipients = [
        (r.get("emailAddress") or {}).get("address")
        for r in message.get("toRecipients") or []
    ]
    recipients = [r for r in recipients if r]
    return {
        "subject": message.get("subject") or "N/A",
        "from": sender,
        "to": "; ".join(recipients) if recipients else "N/A",
        "received": _format_received(message.get("receivedDateTime")),
    }


async def list_inbox(ctx: ActionContext) -> dict[str, Any]:
    """List the newest ``config.count`` messages in the mailbox."""
    mailbox = ctx.config.mailbox
    count = ctx.config.count

    ctx.verbose(
        f"Calling Graph API: GET /users/{mailbox}/messages"
        f"?$top={count}&$orderby=receivedDateTime DESC"
    )

    try:
        messages = await call_remote(
            ctx, "listInbox", lambda: ctx.client.list_messages(mailbox, top=count)
        )
    except RemoteCallFailed as e:
        logger.error(f"Error fetching inbox for {mailbox}: {e.error}")
        ctx.audit.write(
            ACTION_GET_INBOX, f"{STATUS_ERROR}: {e.error}", mailbox, "N/A", "N/A", "N/A", "N/A"
        )
        return failure_result(
            ACTION_GET_INBOX, e.error, message=f"error fetching inbox for {mailbox}"
        )

    ctx.verbose(f"API response received: {len(messages)} messages")
    ctx.echo(f"Newest {count} messages in inbox for {mailbox}:\n")

    items = [summarize_message(m) for m in messages]
    for i, item in enumerate(items, start=1):
        ctx.echo(f"{i}. Subject: {item['subject']}")
        ctx.echo(f"   From: {item['from']}")
        ctx.echo(f"   To: {item['to']}")
        ctx.echo(f"   Received: {item['received']}\n")
        ctx.audit.write(
            ACTION_GET_INBOX,
            STATUS_SUCCESS,
            mailbox,
            item["subject"],
            item["from"],
            item["to"],
            item["received"],
        )

    if not items:
        ctx.echo("No messages found.")
        ctx.audit.write(
            ACTION_GET_INBOX,
            STATUS_SUCCESS,
            mailbox,
            "No messages found (0 messages)",
            "N/A",
            "N/A",
            "N/A",
        )
    else:
        ctx.echo(f"Total messages retrieved: {len(items)}")
        ctx.audit.write(
            ACTION_GET_INBOX,
            STATUS_SUCCESS,
            mailbox,
            f"Retrieved {len(items)} message(s)",
            "SUMMARY",
            "SUMMARY",
            "SUMMARY",
        )

    return {"success": True, "action": ACTION_GET_INBOX, "mailbox": mailbox, "messages": items}


__all__ = [
    "build_message",
    "create_file_attachments",
    "create_recipients",
    "list_inbox",
    "send_mail",
    "summarize_message",
]
