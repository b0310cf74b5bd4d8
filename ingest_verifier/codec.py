"""Line codec for the logs-generator numbering pattern.

Producers print lines like::

    I0101 00:00:00.000000       1 logs_generator.go:67] 42 GET /api/v1/pods 200

possibly with the klog prefix stripped by the collection agent. Only the
sequence number matters; anything that does not match is noise.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Optional, Tuple

# Matches the contents of log entries, parsed or not
LOG_ENTRY_MESSAGE_REGEX = re.compile(
    r"(?:I\d+ \d+:\d+:\d+.\d+       \d+ logs_generator.go:67] )?(\d+) .*"
)

DEFAULT_FILLER = "GET /api/v1/namespaces/default/pods/logs-generator 200"


def decode_line(text: Optional[str]) -> Tuple[int, bool]:
    """Extract the sequence number from a raw line.

    Returns ``(number, True)`` on match and ``(0, False)`` otherwise.
    """
    if not text:
        return 0, False

    match = LOG_ENTRY_MESSAGE_REGEX.search(text)
    if match is None:
        return 0, False

    try:
        return int(match.group(1)), True
    except (TypeError, ValueError):
        return 0, False


def format_line(
    number: int,
    timestamp: Optional[datetime] = None,
    filler: str = DEFAULT_FILLER,
) -> str:
    """Render a line the way the logs generator prints it."""
    ts = timestamp or datetime.now()
    prefix = f"I{ts:%m%d} {ts:%H:%M:%S.%f}       1 logs_generator.go:67] "
    return f"{prefix}{number} {filler}"
