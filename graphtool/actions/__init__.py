"""
Business operations against a mailbox.

Each operation builds the Graph request, runs the remote call through the
retry executor, prints the outcome, and records audit rows.

Components:
    calendar.py: getevents, sendinvite, getschedule
    mail.py: sendmail, getinbox
    export.py: exportinbox, searchandexport (messages saved as JSON files)
    dispatch.py: execute_action (routes an action name to its handler)

Usage:
    from graphtool.actions.dispatch import execute_action
"""

# Action names (the --action flag and the audit file name component)
ACTION_GET_EVENTS = "getevents"
ACTION_SEND_MAIL = "sendmail"
ACTION_SEND_INVITE = "sendinvite"
ACTION_GET_INBOX = "getinbox"
ACTION_GET_SCHEDULE = "getschedule"
ACTION_EXPORT_INBOX = "exportinbox"
ACTION_SEARCH_AND_EXPORT = "searchandexport"

VALID_ACTIONS = [
    ACTION_GET_EVENTS,
    ACTION_SEND_MAIL,
    ACTION_SEND_INVITE,
    ACTION_GET_INBOX,
    ACTION_GET_SCHEDULE,
    ACTION_EXPORT_INBOX,
    ACTION_SEARCH_AND_EXPORT,
]

# Values of the audit Status column
STATUS_SUCCESS = "Success"
STATUS_ERROR = "Error"


__all__ = [
    "ACTION_EXPORT_INBOX",
    "ACTION_GET_EVENTS",
    "ACTION_GET_INBOX",
    "ACTION_GET_SCHEDULE",
    "ACTION_SEARCH_AND_EXPORT",
    "ACTION_SEND_INVITE",
    "ACTION_SEND_MAIL",
    "STATUS_ERROR",
    "STATUS_SUCCESS",
    "VALID_ACTIONS",
]
