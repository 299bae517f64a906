"""
Masking helpers for credentials and identifiers shown in verbose output.

Usage:
    from graphtool.security.masking import mask_secret

    print(f"Secret: {mask_secret(config.secret)}")
"""


def mask_secret(secret: str) -> str:
    """Show the first and last 4 characters of a secret ('abcd********wxyz')."""
    if len(secret) <= 8:
        return "********"
    return secret[:4] + "********" + secret[-4:]


def mask_guid(guid: str) -> str:
    """Show the first and last 4 characters of a GUID."""
    if len(guid) <= 8:
        return "****"
    return guid[:4] + "****-****-****-****" + guid[-4:]


def mask_access_token(token: str) -> str:
    """Show the first 8 and last 4 characters of a bearer token."""
    if not token:
        return ""
    if len(token) <= 16:
        half = len(token) // 2
        return token[:half] + "..." + token[half:]
    return token[:8] + "..." + token[-4:]


def mask_email(email: str) -> str:
    """'user@example.com' -> 'us****@ex****'."""
    if not email:
        return ""
    local, sep, domain = email.partition("@")
    if not sep:
        return local[:2] + "****"
    return f"{local[:2]}****@{domain[:2]}****"


__all__ = ["mask_access_token", "mask_email", "mask_guid", "mask_secret"]
