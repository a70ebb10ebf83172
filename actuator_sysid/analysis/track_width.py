"""Track width estimation for differential drivetrains."""

from __future__ import annotations

from typing import Optional


def calculate_track_width(
    left_delta: float,
    right_delta: float,
    heading_delta: float,
) -> Optional[float]:
    """
    Effective track width from one rotation test.

    Uses the differential drive relation
    track_width = (left_delta - right_delta) / heading_delta.

    Args:
        left_delta: Left side displacement over the test
        right_delta: Right side displacement over the test
        heading_delta: Heading change over the test (radians)

    Returns:
        Track width in the displacement units, or None when the heading did
        not change
    """
    if heading_delta == 0:
        return None
    return (left_delta - right_delta) / heading_delta
