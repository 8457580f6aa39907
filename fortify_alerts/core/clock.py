"""Clock seam — every time-dependent operation reads ``now`` through this."""

from __future__ import annotations

import datetime
from typing import Callable

Clock = Callable[[], datetime.datetime]


def utcnow() -> datetime.datetime:
    """Timezone-aware current UTC time."""
    return datetime.datetime.now(datetime.UTC)
