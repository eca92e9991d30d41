"""Remote query value object."""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class RemoteQuery:
    """Equality filters plus ordering and an offset window.

    ``select`` names the columns to return, including embedded relations
    such as ``"id, profiles (name)"``; None selects everything.
    """

    filters: Dict[str, Any] = field(default_factory=dict)
    select: Optional[str] = None
    order_by: Optional[str] = None
    descending: bool = False
    limit: Optional[int] = None
    offset: Optional[int] = None

    def __post_init__(self):
        if self.limit is not None and self.limit < 1:
            raise ValueError("limit must be >= 1")
        if self.offset is not None and self.offset < 0:
            raise ValueError("offset must be >= 0")

    @classmethod
    def where(cls, **filters) -> "RemoteQuery":
        return cls(filters=filters)

    def ordered(self, column: str, descending: bool = False) -> "RemoteQuery":
        return replace(self, order_by=column, descending=descending)

    def window(self, offset: int, limit: int) -> "RemoteQuery":
        return replace(self, offset=offset, limit=limit)

    def columns(self, select: str) -> "RemoteQuery":
        return replace(self, select=select)
