"""Token parsing utilities for package directives."""

from typing import Optional, Tuple

from .models import PackageReference, PackageVersion


def split_name_and_version(s: str) -> Tuple[str, Optional[str]]:
    """Return (identifier, version or None) split on the first top-level comma.

    Range versions such as ``[1.0,2.0)`` contain commas themselves, so a
    comma inside brackets/parentheses does not split.
    """
    s = s.strip()
    depth = 0
    split_at = -1
    for i, ch in enumerate(s):
        if ch in "[(":
            depth += 1
        elif ch in "])":
            depth = max(depth - 1, 0)
        elif ch == "," and depth == 0:
            split_at = i
            break
    if split_at < 0:
        return s, None
    identifier = s[:split_at].strip()
    version_text = s[split_at + 1:].strip()
    return identifier, version_text if version_text else None


def has_prefix(text: str, prefix: str) -> bool:
    """Case-insensitive prefix test, ignoring leading whitespace."""
    return text.lstrip().lower().startswith(prefix.lower())


def strip_prefix(text: str, prefix: str) -> str:
    """Remove ``prefix`` (case-insensitively) and surrounding whitespace."""
    stripped = text.lstrip()
    return stripped[len(prefix):].strip()


def parse_package_token(token: str) -> PackageReference:
    """Parse ``Name[, Version]`` into a PackageReference.

    Raises:
        ValueError: If the package name is empty or contains whitespace.
    """
    identifier, version_text = split_name_and_version(token)
    if not identifier or any(c.isspace() for c in identifier):
        raise ValueError(f"Invalid package reference '{token.strip()}'")
    return PackageReference(identifier, PackageVersion(version_text or ""))
