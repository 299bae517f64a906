"""Tests for graphtool/actions/dispatch.py"""

import pytest

from graphtool.actions import VALID_ACTIONS
from graphtool.actions.dispatch import HANDLERS, describe_plan, execute_action


class TestExecuteAction:
    def test_every_action_has_a_handler(self):
        assert set(HANDLERS) == set(VALID_ACTIONS)

    @pytest.mark.asyncio
    async def test_routes_to_handler(self, make_context, fake_client):
        fake_client.events = [{"id": "e1", "subject": "Standup"}]
        ctx = make_context(action="getevents")

        result = await execute_action(ctx)

        assert result["success"] is True
        assert result["action"] == "getevents"
        assert fake_client.call_count("list_events") == 1

    @pytest.mark.asyncio
    async def test_getschedule_uses_first_recipient(self, make_context, fake_client):
        fake_client.schedules = [{"availabilityView": "0"}]
        ctx = make_context(action="getschedule", to=["b@example.com"])

        result = await execute_action(ctx)

        assert result["recipient"] == "b@example.com"
        assert result["status"] == "Free"

    @pytest.mark.asyncio
    async def test_unknown_action(self, make_context):
        ctx = make_context(action="nope")
        result = await execute_action(ctx)
        assert result == {"success": False, "action": "nope", "error": "unknown action: nope"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("action", VALID_ACTIONS)
    async def test_whatif_makes_no_calls_and_no_rows(self, make_context, fake_client, action):
        ctx = make_context(action=action, whatif=True, to=["b@example.com"])

        result = await execute_action(ctx)

        assert result["success"] is True
        assert result["dry_run"] is True
        assert fake_client.calls == []
        assert ctx.audit.rows == []
        assert "WHATIF MODE" in ctx.out.getvalue()


class TestDescribePlan:
    def test_sendmail_plan(self, sample_config, tmp_path):
        attachment = tmp_path / "a.txt"
        attachment.write_text("12345")
        config = sample_config.model_copy(
            update={"action": "sendmail", "body": "x" * 250, "attachments": [str(attachment)]}
        )

        plan = describe_plan(config)

        assert f"To: ['{config.mailbox}']" in plan
        assert "Body Type: Text" in plan
        assert "Body Preview: " + "x" * 200 + "..." in plan
        assert "  [1] a.txt (5 bytes)" in plan

    def test_invite_plan_defaults(self, sample_config):
        config = sample_config.model_copy(update={"action": "sendinvite"})
        plan = describe_plan(config)
        assert "Start: now" in plan
        assert "End: start + 1 hour" in plan
        assert "Subject: It's testing event" in plan

    def test_invite_plan_prefers_invite_subject(self, sample_config):
        config = sample_config.model_copy(
            update={"action": "sendinvite", "subject": "Mail", "invite_subject": "Sync"}
        )
        assert "Subject: Sync" in describe_plan(config)

    def test_exportinbox_plan(self, sample_config):
        config = sample_config.model_copy(update={"action": "exportinbox", "count": 7})
        assert "Count: 7" in describe_plan(config)

    def test_searchandexport_plan(self, sample_config):
        config = sample_config.model_copy(
            update={"action": "searchandexport", "message_id": "<abc@example.com>"}
        )
        assert "Message ID: <abc@example.com>" in describe_plan(config)


class TestExportRouting:
    @pytest.mark.asyncio
    async def test_searchandexport_routes_message_id(self, make_context, fake_client):
        ctx = make_context(action="searchandexport", message_id="<missing@example.com>")

        result = await execute_action(ctx)

        assert result["success"] is True
        assert result["exported"] == 0
        assert fake_client.calls == [
            (
                "find_messages",
                {"mailbox": ctx.config.mailbox, "message_id": "<missing@example.com>"},
            )
        ]
