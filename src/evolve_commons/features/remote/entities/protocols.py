"""Remote data service protocol."""

from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from .query import RemoteQuery

Record = Dict[str, Any]


@runtime_checkable
class RemoteDataService(Protocol):
    """Source of truth for domain records, addressed by resource (table) name.

    No transactions and no batch atomicity are assumed.
    """

    async def read(self, resource: str, query: Optional[RemoteQuery] = None) -> List[Record]:
        """Read every record matching query.

        Raises:
            RemoteReadError: The read failed
        """
        ...

    async def read_single(self, resource: str, query: Optional[RemoteQuery] = None) -> Optional[Record]:
        """Read at most one record; None when nothing matches.

        Raises:
            RemoteReadError: The read failed
        """
        ...

    async def write(
        self,
        resource: str,
        payload: Record,
        match: Optional[Dict[str, Any]] = None,
        on_conflict: Optional[str] = None,
    ) -> Record:
        """Persist payload and return the committed record.

        With ``match`` the matching record is updated; with ``on_conflict`` the
        payload is upserted on those columns; otherwise it is inserted.

        Raises:
            RemoteWriteError: The write failed
        """
        ...
