"""Shared validation functions for all entry points.

Pure functions, no MCP or Click dependencies.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Any

_MAX_BRANCH_LENGTH = 200
# Characters git check-ref-format rejects anywhere in a ref component.
_FORBIDDEN_REF_CHARS = re.compile(r"[\s~^:?*\[\\]")


def _first_control_char(value: str) -> str | None:
    for ch in value:
        if unicodedata.category(ch).startswith("C"):  # Cc (control) and Cf (format)
            return ch
    return None


def sanitize_branch_name(value: Any) -> tuple[str, str | None]:
    """Validate a feature-branch suffix.

    Returns (cleaned_name, None) on success or ("", error_message) on failure.
    Applies the subset of ``git check-ref-format`` rules that a single
    branch suffix can violate.
    """
    if not isinstance(value, str):
        return ("", "branchName must be a string")
    ch = _first_control_char(value)
    if ch is not None:
        return ("", f"branchName must not contain control characters (found U+{ord(ch):04X})")
    cleaned = value.strip()
    if not cleaned:
        return ("", "branchName must not be empty")
    if len(cleaned) > _MAX_BRANCH_LENGTH:
        return ("", f"branchName must be at most {_MAX_BRANCH_LENGTH} characters")
    if _FORBIDDEN_REF_CHARS.search(cleaned):
        return ("", "branchName must not contain whitespace or any of ~^:?*[\\")
    if ".." in cleaned or "@{" in cleaned or "//" in cleaned:
        return ("", "branchName must not contain '..', '@{' or '//'")
    if cleaned.startswith(("-", "/", ".")) or cleaned.endswith(("/", ".", ".lock")):
        return ("", "branchName has an invalid start or end")
    return (cleaned, None)


def sanitize_text(value: Any, name: str, *, required: bool = True) -> tuple[str | None, str | None]:
    """Check that *value* is a string (or None when optional).

    Returns (value, None) on success or (None, error_message) on failure.
    Required strings must be non-blank.
    """
    if value is None:
        if required:
            return (None, f"{name} is required")
        return (None, None)
    if not isinstance(value, str):
        return (None, f"{name} must be a string")
    if required and not value.strip():
        return (None, f"{name} must not be empty")
    return (value, None)
