"""
Outbound effects returned by grade-book operations.

Operations that should notify someone return these values alongside their
result; the caller decides how to deliver them (see
``app.utils.notifications.dispatch_effects``).
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple


@dataclass(frozen=True)
class GradeFinished:
    class_id: int
    title: str
    message: str
    receivers: Tuple[int, ...] = field(default_factory=tuple)
    sender: Optional[int] = None
    ref_url: str = ''


@dataclass(frozen=True)
class GradeUnfinished:
    class_id: int
    receivers: Tuple[int, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class GradeReviewActivity:
    """Something happened on a grade review; ``kind`` is the notification type."""
    class_id: int
    kind: str
    title: str
    message: str
    receivers: Tuple[int, ...] = field(default_factory=tuple)
    sender: Optional[int] = None
    ref_url: str = ''
