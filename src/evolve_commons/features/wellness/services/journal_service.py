"""Journal entries, one per day, newest first."""

import logging
from dataclasses import replace
from datetime import date
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Tuple

from ....core.exceptions import MappingError, RemoteReadError
from ...mutations.entities.reactive_state import ReactiveState
from ...remote.entities.query import RemoteQuery
from ..entities.mappers import JournalEntryMapper
from ..entities.models import JournalEntry
from .base import WellnessService

logger = logging.getLogger(__name__)

JOURNAL_TABLE = "journal_entries"
JOURNAL_RESOURCE = "journal_entries"
JOURNAL_COLUMNS = "id, user_id, date, title, content, summary, themes, suggestion"

EntryAnalyzer = Callable[[JournalEntry], Awaitable[Dict[str, Any]]]


def _decode_entries(payload) -> Tuple[JournalEntry, ...]:
    return tuple(JournalEntryMapper.list_to_domain(payload))


def upsert_by_date(entries: Iterable[JournalEntry], entry: JournalEntry) -> Tuple[JournalEntry, ...]:
    """Replace the entry for entry.date (or add it), sorted newest first."""
    others = [e for e in entries if e.date != entry.date]
    return tuple(sorted([entry, *others], key=lambda e: e.date, reverse=True))


class JournalService(WellnessService):
    """Journal entries for the signed-in user."""

    def __init__(self, *args, **kwargs):
        self.entries: ReactiveState[Tuple[JournalEntry, ...]] = ReactiveState(())
        super().__init__(*args, **kwargs)

    def reset(self) -> None:
        self.entries.set(())

    async def load(self) -> bool:
        """Load entries through the cache. False when nothing fresh was loaded."""
        key = self.session.key(JOURNAL_RESOURCE)
        if key is None:
            self.reset()
            return False

        user_id = self.session.user_id

        async def fetch_entries():
            query = RemoteQuery(
                filters={"user_id": user_id},
                select=JOURNAL_COLUMNS,
                order_by="date",
                descending=True,
                limit=self.settings.history_limit,
            )
            return await self.remote.read(JOURNAL_TABLE, query)

        try:
            entries = await self.cache.get_or_set(
                key, self.settings.ttl_journal_ms, fetch_entries, decode=_decode_entries
            )
        except (RemoteReadError, MappingError) as e:
            logger.warning(f"Could not load journal for {user_id}: {e.message}")
            return False

        self.entries.set(entries)
        return True

    async def log_entry(
        self,
        title: str,
        content: str,
        entry_date: date,
        analyze: Optional[EntryAnalyzer] = None,
    ) -> JournalEntry:
        """Save the entry for entry_date, replacing any earlier one for that day.

        When ``analyze`` is given it is run on the saved entry and its
        ``summary``/``themes``/``suggestion`` are stored too. Analysis failures
        are logged and leave the saved entry as is.
        """
        user_id = self.session.require_user()
        cache_key = self.session.key(JOURNAL_RESOURCE)
        pending = JournalEntry(date=entry_date, title=title, content=content, user_id=user_id)

        async def upsert(entries: Tuple[JournalEntry, ...]) -> Tuple[JournalEntry, ...]:
            row = await self.remote.write(
                JOURNAL_TABLE,
                JournalEntryMapper.to_record(pending),
                on_conflict="user_id, date",
            )
            return upsert_by_date(entries, JournalEntryMapper.to_domain(row))

        entries = await self.coordinator.mutate(
            self.entries,
            lambda current: upsert_by_date(current or (), pending),
            upsert,
            cache_key=cache_key,
            encode=JournalEntryMapper.list_to_record,
            name="log_journal_entry",
        )
        saved = next((e for e in entries if e.date == entry_date), pending)

        if analyze is None or saved.id is None:
            return saved

        try:
            return await self._apply_analysis(saved, analyze)
        except Exception as e:
            logger.warning(f"Journal analysis for {saved.id} failed: {e}")
        return saved

    async def _apply_analysis(self, saved: JournalEntry, analyze: EntryAnalyzer) -> JournalEntry:
        analysis = await analyze(saved)
        analyzed = replace(
            saved,
            summary=analysis.get("summary"),
            themes=tuple(analysis.get("themes") or ()),
            suggestion=analysis.get("suggestion"),
        )

        async def update(entries: Tuple[JournalEntry, ...]) -> Tuple[JournalEntry, ...]:
            row = await self.remote.write(
                JOURNAL_TABLE,
                {
                    "summary": analyzed.summary,
                    "themes": list(analyzed.themes),
                    "suggestion": analyzed.suggestion,
                },
                match={"id": saved.id},
            )
            return upsert_by_date(entries, JournalEntryMapper.to_domain(row))

        entries = await self.coordinator.mutate(
            self.entries,
            lambda current: upsert_by_date(current or (), analyzed),
            update,
            cache_key=self.session.key(JOURNAL_RESOURCE),
            encode=JournalEntryMapper.list_to_record,
            name="analyze_journal_entry",
        )
        return next((e for e in entries if e.id == saved.id), analyzed)
