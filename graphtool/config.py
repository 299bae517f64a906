"""
Tool: GraphTool Configuration
Purpose: Merge defaults, YAML, MSGRAPH* environment variables and flags

Precedence (lowest to highest):
    1. GraphToolConfig field defaults
    2. YAML file (--config, MSGRAPHCONFIG, or args/graphtool.yaml if present)
    3. Environment variables (MSGRAPHTENANTID, MSGRAPHMAILBOX, ...)
    4. Command-line flags that were explicitly given

Usage:
    from graphtool.config import load_config, validate_config

    config = load_config(args)
    validate_config(config)
    policy = config.to_retry_policy()
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from graphtool import CONFIG_PATH
from graphtool.actions import (
    ACTION_GET_INBOX,
    ACTION_GET_SCHEDULE,
    ACTION_SEARCH_AND_EXPORT,
    VALID_ACTIONS,
)
from graphtool.errors import ConfigError
from graphtool.logging_config import get_logger
from graphtool.resilience.retry import RetryPolicy


logger = get_logger(__name__)

DEFAULT_SUBJECT = "Automated Tool Notification"
DEFAULT_BODY = "It's a test message, please ignore"
VALID_OUTPUT_FORMATS = ["text", "json"]

# Plain string settings: field name -> environment variable
ENV_STRING_FIELDS = {
    "tenant_id": "MSGRAPHTENANTID",
    "client_id": "MSGRAPHCLIENTID",
    "secret": "MSGRAPHSECRET",
    "mailbox": "MSGRAPHMAILBOX",
    "action": "MSGRAPHACTION",
    "subject": "MSGRAPHSUBJECT",
    "body": "MSGRAPHBODY",
    "body_html": "MSGRAPHBODYHTML",
    "body_template": "MSGRAPHBODYTEMPLATE",
    "invite_subject": "MSGRAPHINVITESUBJECT",
    "message_id": "MSGRAPHMESSAGEID",
    "start": "MSGRAPHSTART",
    "end": "MSGRAPHEND",
    "proxy": "MSGRAPHPROXY",
    "log_level": "MSGRAPHLOGLEVEL",
    "output": "MSGRAPHOUTPUT",
}

# Comma-separated list settings
ENV_LIST_FIELDS = {
    "to": "MSGRAPHTO",
    "cc": "MSGRAPHCC",
    "bcc": "MSGRAPHBCC",
    "attachments": "MSGRAPHATTACHMENTS",
}

# Integer settings with the smallest accepted environment value
ENV_INT_FIELDS = {
    "count": ("MSGRAPHCOUNT", 1),
    "max_retries": ("MSGRAPHMAXRETRIES", 0),
    "retry_delay_ms": ("MSGRAPHRETRYDELAY", 1),
}

SECRET_ENV_VARS = {"MSGRAPHSECRET"}

_TRUE_VALUES = {"1", "t", "true", "yes", "y", "on"}
_FALSE_VALUES = {"0", "f", "false", "no", "n", "off"}


def split_list(value: str | list[str] | None) -> list[str]:
    """Split 'a, b,  , c' into ['a', 'b', 'c']."""
    if value is None:
        return []
    if isinstance(value, str):
        parts = value.split(",")
    else:
        parts = list(value)
    return [p.strip() for p in parts if p and p.strip()]


class GraphToolConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    # Identity
    tenant_id: str = Field(default="")
    client_id: str = Field(default="")
    secret: str = Field(default="", repr=False)
    mailbox: str = Field(default="")
    action: str = Field(default=ACTION_GET_INBOX)

    # Mail
    to: list[str] = Field(default_factory=list)
    cc: list[str] = Field(default_factory=list)
    bcc: list[str] = Field(default_factory=list)
    subject: str = Field(default=DEFAULT_SUBJECT)
    body: str = Field(default=DEFAULT_BODY)
    body_html: str = Field(default="")
    body_template: str = Field(default="")
    attachments: list[str] = Field(default_factory=list)
    message_id: str = Field(default="")

    # Calendar
    invite_subject: str = Field(default="")
    start: str = Field(default="")
    end: str = Field(default="")

    # Network and retries
    proxy: str = Field(default="")
    max_retries: int = Field(default=3, ge=0)
    retry_delay_ms: int = Field(default=2000, gt=0)

    # Runtime
    count: int = Field(default=3, ge=1)
    log_level: str = Field(default="INFO")
    output: str = Field(default="text")
    whatif: bool = Field(default=False)
    verbose: bool = Field(default=False)

    @field_validator("to", "cc", "bcc", "attachments", mode="before")
    @classmethod
    def _split_lists(cls, value: Any) -> list[str]:
        return split_list(value)

    @field_validator("output", "action")
    @classmethod
    def _lowercase(cls, value: str) -> str:
        return value.strip().lower()

    def to_retry_policy(self) -> RetryPolicy:
        return RetryPolicy.from_milliseconds(self.max_retries, self.retry_delay_ms)


# =============================================================================
# Loading
# =============================================================================


def load_yaml_config(path: Path | str | None) -> dict[str, Any]:
    """Read a YAML settings file; a missing default file yields {}."""
    if path is None:
        if not CONFIG_PATH.exists():
            return {}
        path = CONFIG_PATH

    path = Path(path)
    try:
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"config file {path} must contain a mapping")
    return raw


def _parse_bool(value: str) -> bool | None:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    return None


def env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """
    Collect settings from MSGRAPH* environment variables.

    Empty values are ignored, as are numbers below their minimum and
    unparseable booleans.
    """
    values: dict[str, Any] = {}

    for field, env_name in ENV_STRING_FIELDS.items():
        if environ.get(env_name):
            values[field] = environ[env_name]

    for field, env_name in ENV_LIST_FIELDS.items():
        if environ.get(env_name):
            values[field] = split_list(environ[env_name])

    for field, (env_name, minimum) in ENV_INT_FIELDS.items():
        raw = environ.get(env_name)
        if not raw:
            continue
        try:
            parsed = int(raw)
        except ValueError:
            logger.debug(f"Ignoring non-numeric {env_name}={raw!r}")
            continue
        if parsed >= minimum:
            values[field] = parsed

    if environ.get("MSGRAPHWHATIF"):
        parsed_bool = _parse_bool(environ["MSGRAPHWHATIF"])
        if parsed_bool is not None:
            values["whatif"] = parsed_bool

    return values


def flag_overrides(args: Any) -> dict[str, Any]:
    """Collect settings from flags the user actually passed (non-None)."""
    values: dict[str, Any] = {}
    for field in GraphToolConfig.model_fields:
        value = getattr(args, field, None)
        if value is None:
            continue
        # store_true flags default to False; only an explicit True overrides
        if value is False and field in ("whatif", "verbose"):
            continue
        values[field] = value
    return values


def load_config(args: Any = None, environ: Mapping[str, str] | None = None) -> GraphToolConfig:
    """
    Build the effective configuration.

    Args:
        args: argparse Namespace (flags not given must be None)
        environ: Environment mapping (defaults to os.environ)

    Raises:
        ConfigError: Unreadable YAML or values violating field constraints
    """
    environ = os.environ if environ is None else environ

    config_path = getattr(args, "config", None) or environ.get("MSGRAPHCONFIG") or None
    merged: dict[str, Any] = load_yaml_config(config_path)
    merged.update(env_overrides(environ))
    if args is not None:
        merged.update(flag_overrides(args))

    try:
        return GraphToolConfig.model_validate(merged)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError(f"invalid configuration: {problems}") from e


# =============================================================================
# Validation
# =============================================================================


def parse_flexible_time(value: str) -> datetime:
    """
    Parse RFC3339 ('2026-01-15T14:00:00Z') or sortable local format
    ('2026-01-15T14:00:00', taken as UTC).
    """
    if not value:
        raise ValueError("time string is empty")

    text = value.strip()
    if re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}", text):
        return datetime.strptime(text, "%Y-%m-%dT%H:%M:%S").replace(tzinfo=timezone.utc)

    if re.fullmatch(
        r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?(Z|[+-]\d{2}:\d{2})", text
    ):
        return datetime.fromisoformat(text.replace("Z", "+00:00"))

    raise ValueError(
        "invalid time format (expected RFC3339 like '2026-01-15T14:00:00Z' "
        "or sortable like '2026-01-15T14:00:00')"
    )


def validate_guid(value: str, field_name: str) -> None:
    value = value.strip()
    if not value:
        raise ConfigError(f"{field_name} cannot be empty")
    if len(value) != 36:
        raise ConfigError(
            f"{field_name} should be a GUID "
            "(36 characters, format: 12345678-1234-1234-1234-123456789012)"
        )
    if any(value[i] != "-" for i in (8, 13, 18, 23)):
        raise ConfigError(f"{field_name} has invalid GUID format (dashes at wrong positions)")


def validate_email(value: str) -> None:
    value = value.strip()
    if not value:
        raise ConfigError("email cannot be empty")
    if "@" not in value:
        raise ConfigError(f"invalid email format: {value} (missing @)")
    local, _, domain = value.partition("@")
    if not local or not domain or "@" in domain:
        raise ConfigError(f"invalid email format: {value}")


def validate_emails(values: list[str], field_name: str) -> None:
    for value in values:
        try:
            validate_email(value)
        except ConfigError as e:
            raise ConfigError(f"{field_name} contains invalid email: {e}") from e


def validate_file_path(value: str, field_name: str) -> None:
    """Attachment paths must be existing regular files without '..' traversal."""
    if not value:
        return

    path = Path(value)
    if not path.is_absolute() and ".." in Path(os.path.normpath(value)).parts:
        raise ConfigError(
            f"{field_name}: path contains directory traversal (..) which is not allowed"
        )

    try:
        is_file = path.resolve().is_file()
        exists = path.resolve().exists()
    except OSError as e:
        raise ConfigError(f"{field_name}: cannot access file: {e}") from e

    if not exists:
        raise ConfigError(f"{field_name}: file not found: {value}")
    if not is_file:
        raise ConfigError(f"{field_name}: not a regular file (is it a directory?): {value}")


MAX_MESSAGE_ID_LENGTH = 998

# Filter operators that must not appear inside a $filter string literal
_ODATA_OPERATORS = (" or ", " and ", " eq ", " ne ", " lt ", " gt ", " le ", " ge ", " not ")


def validate_message_id(value: str) -> None:
    """
    Check an Internet Message ID before it is placed in an OData $filter.

    Must look like ``<local@domain>`` and carry nothing that could close the
    string literal or add filter clauses.
    """
    if not value:
        raise ConfigError("message ID cannot be empty")
    if not (value.startswith("<") and value.endswith(">")):
        raise ConfigError("message ID must be enclosed in angle brackets: <local@domain>")
    if len(value) > MAX_MESSAGE_ID_LENGTH:
        raise ConfigError(
            f"message ID exceeds maximum length of {MAX_MESSAGE_ID_LENGTH} characters"
        )
    if any(ch in value for ch in "'\"\\"):
        raise ConfigError(
            "message ID contains invalid characters: quotes and backslashes not allowed"
        )
    lowered = value.lower()
    if any(op in lowered for op in _ODATA_OPERATORS):
        raise ConfigError("message ID contains OData operators which are not allowed")


def validate_config(config: GraphToolConfig) -> None:
    """
    Check that a configuration is complete and consistent.

    Raises:
        ConfigError: Describing the first problem found
    """
    validate_guid(config.tenant_id, "Tenant ID")
    validate_guid(config.client_id, "Client ID")

    try:
        validate_email(config.mailbox)
    except ConfigError as e:
        raise ConfigError(f"invalid mailbox: {e}") from e

    if not config.secret:
        raise ConfigError("missing authentication: provide --secret (env: MSGRAPHSECRET)")

    for i, attachment in enumerate(config.attachments, start=1):
        validate_file_path(attachment, f"Attachment file #{i}")

    if config.body_template:
        validate_file_path(config.body_template, "Body template file")

    validate_emails(config.to, "To recipients")
    validate_emails(config.cc, "CC recipients")
    validate_emails(config.bcc, "BCC recipients")

    for value, field_name in ((config.start, "Start time"), (config.end, "End time")):
        if value:
            try:
                parse_flexible_time(value)
            except ValueError as e:
                raise ConfigError(f"{field_name}: {e}") from e

    if config.action not in VALID_ACTIONS:
        raise ConfigError(
            f"invalid action: {config.action} (use: {', '.join(VALID_ACTIONS)})"
        )

    if config.output not in VALID_OUTPUT_FORMATS:
        raise ConfigError(
            f"invalid output format: {config.output} (use: {', '.join(VALID_OUTPUT_FORMATS)})"
        )

    if config.action == ACTION_GET_SCHEDULE:
        if not config.to:
            raise ConfigError(
                "getschedule action requires --to parameter (recipient email address)"
            )
        if len(config.to) > 1:
            raise ConfigError(
                "getschedule action only supports checking one recipient at a time "
                f"(got {len(config.to)} recipients)"
            )

    if config.action == ACTION_SEARCH_AND_EXPORT:
        if not config.message_id:
            raise ConfigError("searchandexport action requires --messageid parameter")
        validate_message_id(config.message_id)


def load_body_template(config: GraphToolConfig) -> GraphToolConfig:
    """
    Return ``config`` with the body template's contents as the HTML body.

    Without a template the configuration is returned unchanged.

    Raises:
        ConfigError: The template file cannot be read
    """
    if not config.body_template:
        return config

    path = Path(config.body_template)
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"failed to read body template file: {e}") from e

    logger.info(f"Loaded email body from template {path} ({len(content)} characters)")
    return config.model_copy(update={"body_html": content})


def msgraph_environment(environ: Mapping[str, str] | None = None) -> dict[str, str]:
    """All non-empty MSGRAPH* variables, sorted by name."""
    environ = os.environ if environ is None else environ
    return {k: environ[k] for k in sorted(environ) if k.startswith("MSGRAPH") and environ[k]}


__all__ = [
    "DEFAULT_BODY",
    "DEFAULT_SUBJECT",
    "SECRET_ENV_VARS",
    "VALID_OUTPUT_FORMATS",
    "GraphToolConfig",
    "env_overrides",
    "flag_overrides",
    "load_body_template",
    "load_config",
    "load_yaml_config",
    "msgraph_environment",
    "parse_flexible_time",
    "split_list",
    "validate_config",
    "validate_email",
    "validate_file_path",
    "validate_guid",
    "validate_message_id",
]
