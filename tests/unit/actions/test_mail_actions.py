"""Tests for graphtool/actions/mail.py"""

import base64

import httpx
import pytest

from graphtool.actions.mail import (
    build_message,
    create_file_attachments,
    list_inbox,
    send_mail,
    summarize_message,
)
from graphtool.errors import GraphAPIError


MAILBOX = "user@example.com"


def _message(subject, sender, recipients, received="2026-01-15T14:05:09Z"):
    return {
        "subject": subject,
        "from": {"emailAddress": {"address": sender}},
        "toRecipients": [{"emailAddress": {"address": r}} for r in recipients],
        "receivedDateTime": received,
    }


class TestAttachments:
    def test_reads_and_encodes(self, tmp_path):
        path = tmp_path / "report.pdf"
        path.write_bytes(b"%PDF-1.4 data")

        attachments = create_file_attachments([str(path)])

        assert attachments == [
            {
                "@odata.type": "#microsoft.graph.fileAttachment",
                "name": "report.pdf",
                "contentType": "application/pdf",
                "contentBytes": base64.b64encode(b"%PDF-1.4 data").decode(),
            }
        ]

    def test_unknown_extension_is_octet_stream(self, tmp_path):
        path = tmp_path / "blob.zzz"
        path.write_bytes(b"\x00\x01")
        assert create_file_attachments([str(path)])[0]["contentType"] == (
            "application/octet-stream"
        )

    def test_unreadable_file_skipped(self, tmp_path):
        good = tmp_path / "notes.txt"
        good.write_text("hi")
        attachments = create_file_attachments([str(tmp_path / "missing.txt"), str(good)])
        assert [a["name"] for a in attachments] == ["notes.txt"]


class TestBuildMessage:
    def test_html_wins(self):
        message = build_message("S", "text", "<p>html</p>", ["a@example.com"], [], [], [])
        assert message["body"] == {"contentType": "HTML", "content": "<p>html</p>"}
        assert message["toRecipients"] == [{"emailAddress": {"address": "a@example.com"}}]
        assert "ccRecipients" not in message
        assert "attachments" not in message

    def test_text_body(self):
        message = build_message("S", "plain", "", [], ["c@example.com"], ["b@example.com"], [])
        assert message["body"] == {"contentType": "Text", "content": "plain"}
        assert message["ccRecipients"][0]["emailAddress"]["address"] == "c@example.com"
        assert message["bccRecipients"][0]["emailAddress"]["address"] == "b@example.com"


class TestSendMail:
    @pytest.mark.asyncio
    async def test_defaults_recipient_to_mailbox(self, make_context, fake_client):
        ctx = make_context(action="sendmail")

        result = await send_mail(ctx)

        assert result["success"] is True
        message = fake_client.calls[0][1]["message"]
        assert message["toRecipients"] == [{"emailAddress": {"address": MAILBOX}}]
        assert message["subject"] == "Automated Tool Notification"
        assert ctx.audit.rows[0][1:] == [
            "sendmail", "Success", MAILBOX, MAILBOX, "", "",
            "Automated Tool Notification", "Text", "0",
        ]

    @pytest.mark.asyncio
    async def test_cc_only_does_not_default_to(self, make_context, fake_client):
        ctx = make_context(action="sendmail", cc=["c@example.com"])
        await send_mail(ctx)
        message = fake_client.calls[0][1]["message"]
        assert "toRecipients" not in message

    @pytest.mark.asyncio
    async def test_row_joins_recipients(self, make_context, tmp_path):
        attachment = tmp_path / "a.txt"
        attachment.write_text("x")
        ctx = make_context(
            action="sendmail",
            to=["a@example.com", "b@example.com"],
            bcc=["z@example.com"],
            body_html="<b>hi</b>",
            attachments=[str(attachment)],
        )

        await send_mail(ctx)

        row = ctx.audit.rows[0]
        assert row[4] == "a@example.com; b@example.com"
        assert row[6] == "z@example.com"
        assert row[8:] == ["HTML", "1"]

    @pytest.mark.asyncio
    async def test_failure_not_retried(self, make_context, fake_client):
        fake_client.failures["send_mail"] = [httpx.ConnectError("connection refused")]
        ctx = make_context(action="sendmail")

        result = await send_mail(ctx)

        assert result["success"] is False
        assert fake_client.call_count("send_mail") == 1
        assert ctx.audit.rows[0][2] == "Error: connection refused"

    @pytest.mark.asyncio
    async def test_throttled_send_is_enriched(self, make_context, fake_client):
        fake_client.failures["send_mail"] = [
            GraphAPIError(429, "TooManyRequests", "slow", {"Retry-After": "10"})
        ]
        ctx = make_context(action="sendmail")

        result = await send_mail(ctx)

        assert "rate limit exceeded during sendEmail (retry after 10 seconds)" in result["error"]


class TestListInbox:
    def test_summarize_message(self):
        summary = summarize_message(_message("Hi", "a@example.com", ["b@example.com", "c@example.com"]))
        assert summary == {
            "subject": "Hi",
            "from": "a@example.com",
            "to": "b@example.com; c@example.com",
            "received": "2026-01-15 14:05:09",
        }

    def test_summarize_sparse_message(self):
        assert summarize_message({}) == {
            "subject": "N/A", "from": "N/A", "to": "N/A", "received": "N/A",
        }

    @pytest.mark.asyncio
    async def test_rows_and_summary(self, make_context, fake_client):
        fake_client.messages = [
            _message("First", "a@example.com", [MAILBOX]),
            _message("Second", "b@example.com", []),
        ]
        ctx = make_context(action="getinbox", count=2)

        result = await list_inbox(ctx)

        assert result["success"] is True
        rows = [row[1:] for row in ctx.audit.rows]
        assert rows[0] == [
            "getinbox", "Success", MAILBOX, "First", "a@example.com", MAILBOX,
            "2026-01-15 14:05:09",
        ]
        assert rows[1][5] == "N/A"
        assert rows[2] == [
            "getinbox", "Success", MAILBOX, "Retrieved 2 message(s)",
            "SUMMARY", "SUMMARY", "SUMMARY",
        ]

    @pytest.mark.asyncio
    async def test_empty_inbox(self, make_context):
        ctx = make_context(action="getinbox")
        await list_inbox(ctx)
        assert ctx.audit.rows[0][1:] == [
            "getinbox", "Success", MAILBOX, "No messages found (0 messages)",
            "N/A", "N/A", "N/A",
        ]

    @pytest.mark.asyncio
    async def test_retried_then_succeeds(self, make_context, fake_client):
        fake_client.failures["list_messages"] = [httpx.ReadTimeout("read timeout")]
        fake_client.messages = [_message("Only", "a@example.com", [MAILBOX])]
        ctx = make_context(action="getinbox")

        result = await list_inbox(ctx)

        assert result["success"] is True
        assert fake_client.call_count("list_messages") == 2

    @pytest.mark.asyncio
    async def test_json_mode_prints_nothing(self, make_context, fake_client):
        fake_client.messages = [_message("Only", "a@example.com", [MAILBOX])]
        ctx = make_context(action="getinbox", output="json")

        result = await list_inbox(ctx)

        assert ctx.out.getvalue() == ""
        assert result["messages"][0]["subject"] == "Only"
