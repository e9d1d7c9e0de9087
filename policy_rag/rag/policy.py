"""Policy identifier extraction from source file names."""

import re
from pathlib import PurePath

# e.g. "P-018 INFORMATION SECURITY.pdf" -> "P-018", "PM-001-002 AML.pdf" -> "PM-001"
POLICY_NUMBER_PATTERN = re.compile(r"^(?:PM|P)-\d+")


def extract_policy_number(filename: str | None) -> str | None:
    """Return the policy identifier a file name starts with, if any."""
    if not filename:
        return None
    match = POLICY_NUMBER_PATTERN.match(PurePath(filename).name)
    return match.group(0) if match else None
