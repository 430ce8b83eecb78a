import re

import pendulum

from typing import List

ISSUE_KEY_PATTERN = re.compile(r"[A-Z]{2,6}-\d{1,5}")


def extract_issue_keys(text: str) -> List[str]:
    """
    Find issue tracker keys such as "ZEB-123" in free text. Each key is
    returned once, in order of first appearance.
    """
    keys = []
    for match in ISSUE_KEY_PATTERN.findall(text or ""):
        if match not in keys:
            keys.append(match)
    return keys


def format_elapsed(start: pendulum.DateTime, stop: pendulum.DateTime) -> str:
    """
    Render the interval as "1h 5m 3s", leaving out zero leading units.
    """
    total = max(int((stop - start).total_seconds()), 0)
    hours, remainder = divmod(total, 3600)
    minutes, seconds = divmod(remainder, 60)

    if hours:
        return f"{hours}h {minutes}m {seconds}s"
    if minutes:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"


def format_hours(hours: float) -> str:
    return f"{hours:.2f}h"
