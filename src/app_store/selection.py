"""
Version selection from an aggregated history listing.
"""

from collections.abc import Sequence

from ..shared_utilities import get_logger
from ..version_history.data_models import VersionRecord

logger = get_logger(__name__)


def select_version(
    versions: Sequence[VersionRecord], answer: str = "", preferred_id: str = ""
) -> str:
    """
    Pick the version identifier to download.

    The answer is matched, in order, as a 1-based serial number from the
    listing, a version identifier and a version label. Anything else falls
    back to the first listed version.

    Args:
        versions: Listing in display order (first entry is the default)
        answer: Operator answer; empty selects the default
        preferred_id: Version identifier requested up front, used when listed

    Returns:
        The selected version identifier, or "" when there is nothing to select
    """
    if not versions:
        return ""

    if preferred_id:
        for record in versions:
            if record.version_id == str(preferred_id):
                return record.version_id

    answer = (answer or "").strip()
    if not answer:
        return versions[0].version_id

    if answer.isascii() and answer.isdigit() and 0 < int(answer) <= len(versions):
        return versions[int(answer) - 1].version_id

    for record in versions:
        if record.version_id == answer:
            return record.version_id

    for record in versions:
        if record.version == answer:
            return record.version_id

    logger.warning(f"Invalid selection {answer!r}, using the latest version")
    return versions[0].version_id
