"""
Helpers for credential ids, user verification values and decision actions.
"""

from typing import Optional
from urllib.parse import urlsplit, urlunsplit

# Separator between the owning user id and the device context in a credential id
DEVICE_ALIAS = "-device-alias-"

ACTION_APPROVE = "approve"


def build_credential_id(user_id: str, context: Optional[str]) -> str:
    """
    Build the credential id the device registers under: ``<user>-device-alias-<context>``.
    """
    return f"{user_id}{DEVICE_ALIAS}{context or ''}"


def extract_user_id(credential_id: Optional[str]) -> Optional[str]:
    """
    Return the user id prefix of a credential id, or None if the credential id
    does not follow the device alias convention.
    """
    if not credential_id or not credential_id.strip():
        return None

    alias_index = credential_id.find(DEVICE_ALIAS)
    if alias_index < 0:
        return None

    user_id = credential_id[:alias_index]
    return user_id if user_id.strip() else None


def first_non_blank(*values: Optional[str]) -> Optional[str]:
    """Return the first value that is not None or whitespace, trimmed."""
    for value in values:
        if value is not None and value.strip():
            return value.strip()
    return None


def normalize_action(action: Optional[str]) -> str:
    """Trim and lower-case the requested action; blank means approve."""
    if action is None or not action.strip():
        return ACTION_APPROVE
    return action.strip().lower()


def strip_query_and_fragment(url: str) -> str:
    """
    Drop the query and fragment from a URL. DPoP ``htu`` claims must not
    carry them (RFC 9449).
    """
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))
