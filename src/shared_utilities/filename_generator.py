"""
Shared filename generation utilities for consistent report naming
"""

from pathlib import Path

# Characters that are not allowed in file names on at least one platform
UNSAFE_FILENAME_CHARS = ("\\", "/", ":", "*", "?", '"', "<", ">", "|")


def sanitize_filename_component(value: str, replacement: str = "_") -> str:
    """
    Replace filesystem-unsafe characters in a single path component.

    Only the characters in UNSAFE_FILENAME_CHARS are touched; spaces and
    non-ASCII letters are kept so report names stay recognisable.

    Args:
        value: Raw string (e.g. an app display name)
        replacement: Replacement for every unsafe character

    Returns:
        String safe to embed in a file name
    """
    for char in UNSAFE_FILENAME_CHARS:
        value = value.replace(char, replacement)
    return value


def generate_history_filename(
    app_id: str, app_name: str, extension: str = "txt"
) -> str:
    """
    Generate the report filename for an application's version history.

    Args:
        app_id: Resolved numeric App Store identifier
        app_name: Display name of the application
        extension: File extension (default: "txt")

    Returns:
        Filename in the form "<app_id>_<sanitized name>_history.<extension>"
    """
    safe_name = sanitize_filename_component(app_name)
    return f"{app_id}_{safe_name}_history.{extension}"


def generate_package_filename(
    bundle_id: str | None, app_id: str, version: str, extension: str = "ipa"
) -> str:
    """
    Generate a filename for a downloaded application package.

    Args:
        bundle_id: Bundle identifier, falls back to the App ID when absent
        app_id: Resolved numeric App Store identifier
        version: Version label of the downloaded build
        extension: File extension (default: "ipa")
    """
    stem = bundle_id or app_id
    return sanitize_filename_component(f"{stem}_{app_id}_{version}.{extension}")


def ensure_output_directory(file_path: str | Path) -> Path:
    """
    Ensure the directory for the output file exists.

    Args:
        file_path: Path to the output file

    Returns:
        Path object for the file
    """
    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    return path
