"""
Resolve an App Store application identifier from user input.
"""

import re

# First match wins; ASCII digits only, like the store itself
APP_URL_PATTERNS = (
    re.compile(r"/id(\d+)", re.ASCII),
    re.compile(r"/app/[^/]+/id(\d+)", re.ASCII),
    re.compile(r"itunes\.apple\.com/[^/]+/app/[^/]+/id(\d+)", re.ASCII),
    re.compile(r"apps\.apple\.com/[^/]+/app/[^/]+/id(\d+)", re.ASCII),
)

_DIGITS = re.compile(r"\d+", re.ASCII)


def extract_app_id_from_url(text: str) -> str | None:
    """Return the digit run following ``id`` in a storefront URL, if any."""
    for pattern in APP_URL_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1)
    return None


def resolve_app_id(text: str | None) -> str | None:
    """
    Resolve a canonical numeric App ID from a raw ID or a storefront URL.

    Args:
        text: A bare numeric ID such as "123456789" or a URL such as
            "https://apps.apple.com/us/app/widget/id123456789"

    Returns:
        The numeric ID as a string, or None when nothing resolvable was found.
        An unresolvable input is a normal outcome, not an error.
    """
    if not text:
        return None

    text = str(text).strip()
    app_id = extract_app_id_from_url(text)
    if app_id:
        return app_id

    if _DIGITS.fullmatch(text):
        return text

    return None


def is_url_input(text: str | None) -> bool:
    """True when the App ID was taken from a URL rather than given directly."""
    if not text:
        return False
    return extract_app_id_from_url(str(text).strip()) is not None
