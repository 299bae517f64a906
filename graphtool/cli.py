#!/usr/bin/env python3
"""
GraphTool Command Line Interface

Main entry point for the `graphtool` command.

Usage:
    graphtool --action getevents --mailbox user@example.com
    graphtool --action sendmail --to a@example.com --subject "Hello" --attachments report.pdf
    graphtool --action getschedule --to colleague@example.com --output json
    graphtool --action sendinvite --start 2026-01-15T14:00:00Z --whatif
    graphtool --action searchandexport --messageid "<CAB123@mail.example.com>"
    graphtool --version

Every flag can also come from an MSGRAPH* environment variable (e.g.
MSGRAPHTENANTID) or from a YAML settings file (--config / MSGRAPHCONFIG).
Flags win over environment variables, which win over the file.

Exit codes:
    0    action succeeded
    1    action failed
    2    configuration error
    130  cancelled (SIGINT/SIGTERM)
"""

from __future__ import annotations

import argparse
import asyncio
import json
import signal
import sys
from typing import Any, TextIO

from dotenv import load_dotenv

from graphtool import TOOL_NAME, __version__
from graphtool.actions import VALID_ACTIONS
from graphtool.actions.context import ActionContext
from graphtool.actions.dispatch import execute_action
from graphtool.audit import CsvAuditLog, open_audit_log
from graphtool.audit.sink import AuditSink
from graphtool.config import (
    SECRET_ENV_VARS,
    GraphToolConfig,
    load_body_template,
    load_config,
    msgraph_environment,
    validate_config,
)
from graphtool.errors import ConfigError
from graphtool.graph.client import GraphClient
from graphtool.logging_config import get_logger, setup_logging
from graphtool.resilience.cancellation import CancellationToken
from graphtool.security.masking import mask_email, mask_guid, mask_secret


logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG = 2
EXIT_CANCELLED = 130


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argument parser.

    Every option defaults to None so that only flags the user actually gave
    override environment and file settings.
    """
    parser = argparse.ArgumentParser(
        prog=TOOL_NAME,
        description="GraphTool - Microsoft Graph mail and calendar operations",
    )
    parser.add_argument("--version", "-V", action="store_true", help="Show version and exit")
    parser.add_argument("--config", help="YAML settings file (env: MSGRAPHCONFIG)")

    auth = parser.add_argument_group("authentication")
    auth.add_argument("--tenantid", dest="tenant_id", help="Azure tenant ID (env: MSGRAPHTENANTID)")
    auth.add_argument("--clientid", dest="client_id", help="Application ID (env: MSGRAPHCLIENTID)")
    auth.add_argument("--secret", help="Client secret (env: MSGRAPHSECRET)")
    auth.add_argument("--mailbox", help="Target mailbox address (env: MSGRAPHMAILBOX)")

    action = parser.add_argument_group("action")
    action.add_argument(
        "--action",
        help=f"Operation to perform: {', '.join(VALID_ACTIONS)} (env: MSGRAPHACTION)",
    )
    action.add_argument("--to", help="Comma-separated To recipients (env: MSGRAPHTO)")
    action.add_argument("--cc", help="Comma-separated CC recipients (env: MSGRAPHCC)")
    action.add_argument("--bcc", help="Comma-separated BCC recipients (env: MSGRAPHBCC)")
    action.add_argument("--subject", help="Mail or invite subject (env: MSGRAPHSUBJECT)")
    action.add_argument("--body", help="Plain text body (env: MSGRAPHBODY)")
    action.add_argument("--bodyHTML", dest="body_html", help="HTML body (env: MSGRAPHBODYHTML)")
    action.add_argument(
        "--body-template", dest="body_template",
        help="File whose contents become the HTML body (env: MSGRAPHBODYTEMPLATE)",
    )
    action.add_argument(
        "--attachments", help="Comma-separated file paths (env: MSGRAPHATTACHMENTS)"
    )
    action.add_argument(
        "--invite-subject", dest="invite_subject",
        help="Invite subject, overrides --subject for sendinvite (env: MSGRAPHINVITESUBJECT)",
    )
    action.add_argument("--start", help="Invite start, RFC3339 (env: MSGRAPHSTART)")
    action.add_argument("--end", help="Invite end, RFC3339 (env: MSGRAPHEND)")
    action.add_argument(
        "--count", type=int,
        help="Items to retrieve for getevents/getinbox/exportinbox (env: MSGRAPHCOUNT)",
    )
    action.add_argument(
        "--messageid", dest="message_id",
        help="Internet Message ID for searchandexport, e.g. <id@host> (env: MSGRAPHMESSAGEID)",
    )

    network = parser.add_argument_group("network")
    network.add_argument("--proxy", help="HTTP(S) proxy URL (env: MSGRAPHPROXY)")
    network.add_argument(
        "--maxretries", dest="max_retries", type=int,
        help="Retries for transient failures (env: MSGRAPHMAXRETRIES)",
    )
    network.add_argument(
        "--retrydelay", dest="retry_delay_ms", type=int,
        help="Base retry delay in milliseconds (env: MSGRAPHRETRYDELAY)",
    )

    output = parser.add_argument_group("output")
    output.add_argument(
        "--loglevel", dest="log_level", help="DEBUG, INFO, WARN, ERROR (env: MSGRAPHLOGLEVEL)"
    )
    output.add_argument("--output", help="text or json (env: MSGRAPHOUTPUT)")
    output.add_argument(
        "--whatif", action="store_true", default=None,
        help="Dry run: show what would happen without calling the service",
    )
    output.add_argument(
        "--verbose", "-v", action="store_true", default=None,
        help="Show configuration and API call details",
    )
    return parser


def print_verbose_config(config: GraphToolConfig, out: TextIO | None = None) -> None:
    """Print the effective configuration with credentials masked."""
    out = out or sys.stdout
    print("Environment variables:", file=out)
    env = msgraph_environment()
    if not env:
        print("  (none set)", file=out)
    for name, value in env.items():
        shown = mask_secret(value) if name in SECRET_ENV_VARS else value
        print(f"  {name} = {shown}", file=out)

    print("\nFinal configuration:", file=out)
    print(f"  Tenant ID:   {mask_guid(config.tenant_id)}", file=out)
    print(f"  Client ID:   {mask_guid(config.client_id)}", file=out)
    print(f"  Secret:      {mask_secret(config.secret)}", file=out)
    print(f"  Mailbox:     {mask_email(config.mailbox)}", file=out)
    print(f"  Action:      {config.action}", file=out)
    print(f"  Output:      {config.output}", file=out)
    print(f"  Max retries: {config.max_retries}", file=out)
    print(f"  Retry delay: {config.retry_delay_ms}ms", file=out)
    if config.proxy:
        print(f"  Proxy:       {config.proxy}", file=out)
    print(file=out)


def install_signal_handlers(cancel: CancellationToken) -> None:
    """Cancel ``cancel`` on SIGINT/SIGTERM (where the loop supports it)."""
    loop = asyncio.get_running_loop()

    def _on_signal(signame: str) -> None:
        logger.warning(f"Received {signame}, cancelling...")
        cancel.cancel()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _on_signal, sig.name)
        except (NotImplementedError, RuntimeError):
            logger.debug(f"Signal handler for {sig.name} not supported on this platform")


async def run(config: GraphToolConfig, audit: AuditSink, cancel: CancellationToken) -> dict[str, Any]:
    install_signal_handlers(cancel)
    async with GraphClient.from_config(config) as client:
        ctx = ActionContext(
            client=client,
            config=config,
            policy=config.to_retry_policy(),
            audit=audit,
            cancel=cancel,
        )
        return await execute_action(ctx)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    load_dotenv()
    args = build_parser().parse_args(argv)

    if args.version:
        print(f"{TOOL_NAME} version {__version__}")
        return EXIT_OK

    try:
        config = load_config(args)
        validate_config(config)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG

    setup_logging(
        "DEBUG" if config.verbose else config.log_level,
        json_output=config.output == "json",
    )

    try:
        config = load_body_template(config)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG

    if config.verbose and config.output == "text":
        print_verbose_config(config)

    audit = open_audit_log(config.action)
    if isinstance(audit, CsvAuditLog) and config.output == "text":
        print(f"Logging to: {audit.path}\n")

    cancel = CancellationToken()
    try:
        result = asyncio.run(run(config, audit, cancel))
    except KeyboardInterrupt:
        result = {"success": False, "action": config.action, "error": "interrupted", "cancelled": True}
    finally:
        audit.close()

    if config.output == "json":
        print(json.dumps(result, indent=2, default=str))
    elif not result.get("success"):
        print(f"Error: {result.get('error')}", file=sys.stderr)

    if result.get("cancelled") or cancel.cancelled:
        return EXIT_CANCELLED
    return EXIT_OK if result.get("success") else EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
