"""Weight history and daily mood/symptom logs."""

import logging
from datetime import date
from typing import Iterable, Optional, Tuple, Union

from ....core.exceptions import MappingError, RemoteReadError
from ....utils.datetime import utc_now
from ...mutations.entities.reactive_state import ReactiveState
from ...remote.entities.query import RemoteQuery
from ..entities.mappers import DailyLogMapper, WeightEntryMapper
from ..entities.models import DailyLog, Mood, WeightEntry
from .base import WellnessService
from .profile_service import ProfileService

logger = logging.getLogger(__name__)

WEIGHT_TABLE = "weight_logs"
DAILY_LOGS_TABLE = "daily_logs"
WEIGHT_RESOURCE = "weight_history"
DAILY_LOGS_RESOURCE = "daily_logs"
CYCLE_INSIGHT_RESOURCE = "cycle_insight"


def _decode_weights(payload) -> Tuple[WeightEntry, ...]:
    return tuple(WeightEntryMapper.list_to_domain(payload))


def _decode_daily_logs(payload) -> Tuple[DailyLog, ...]:
    return tuple(DailyLogMapper.list_to_domain(payload))


def replace_by_date(items: Iterable, item, newest_first: bool):
    """Replace the item for item.date (or add it), sorted by date."""
    others = [existing for existing in items if existing.date != item.date]
    return tuple(sorted([item, *others], key=lambda i: i.date, reverse=newest_first))


class WellnessLogService(WellnessService):
    """Weight history (oldest first) and daily logs (newest first).

    With a ``profile_service`` logging a weight also updates the profile
    weight, and a new period start moves the profile's last period date.
    """

    def __init__(self, *args, profile_service: Optional[ProfileService] = None, **kwargs):
        self.weight_history: ReactiveState[Tuple[WeightEntry, ...]] = ReactiveState(())
        self.daily_logs: ReactiveState[Tuple[DailyLog, ...]] = ReactiveState(())
        self.profile_service = profile_service
        super().__init__(*args, **kwargs)

    def reset(self) -> None:
        self.weight_history.set(())
        self.daily_logs.set(())

    async def load(self) -> bool:
        """Load weight history and daily logs through the cache.

        Each one is published as soon as it is loaded; False when nobody is
        signed in or either read failed.
        """
        weight_key = self.session.key(WEIGHT_RESOURCE)
        logs_key = self.session.key(DAILY_LOGS_RESOURCE)
        if weight_key is None or logs_key is None:
            self.reset()
            return False

        user_id = self.session.user_id

        async def fetch_weights():
            return await self.remote.read(WEIGHT_TABLE, RemoteQuery.where(user_id=user_id).ordered("date"))

        async def fetch_daily_logs():
            query = (
                RemoteQuery.where(user_id=user_id)
                .ordered("date", descending=True)
                .window(0, self.settings.daily_log_limit)
            )
            return await self.remote.read(DAILY_LOGS_TABLE, query)

        try:
            weights = await self.cache.get_or_set(
                weight_key, self.settings.ttl_history_ms, fetch_weights, decode=_decode_weights
            )
        except (RemoteReadError, MappingError) as e:
            logger.warning(f"Could not load weight history for {user_id}: {e.message}")
            return False
        self.weight_history.set(weights)

        try:
            logs = await self.cache.get_or_set(
                logs_key, self.settings.ttl_daily_logs_ms, fetch_daily_logs, decode=_decode_daily_logs
            )
        except (RemoteReadError, MappingError) as e:
            logger.warning(f"Could not load daily logs for {user_id}: {e.message}")
            return False
        self.daily_logs.set(logs)
        return True

    async def log_weight(self, weight: float, entry_date: Optional[date] = None) -> WeightEntry:
        """Save the weight for entry_date (today by default), replacing that day's entry.

        When the entry is the most recent one the profile weight follows it.
        """
        user_id = self.session.require_user()
        entry_date = entry_date or utc_now().date()
        pending = WeightEntry(date=entry_date, weight=weight, user_id=user_id)

        async def upsert(entries: Tuple[WeightEntry, ...]) -> Tuple[WeightEntry, ...]:
            row = await self.remote.write(
                WEIGHT_TABLE, WeightEntryMapper.to_record(pending), on_conflict="user_id, date"
            )
            return replace_by_date(entries, WeightEntryMapper.to_domain(row), newest_first=False)

        history = await self.coordinator.mutate(
            self.weight_history,
            lambda current: replace_by_date(current or (), pending, newest_first=False),
            upsert,
            cache_key=self.session.key(WEIGHT_RESOURCE),
            encode=WeightEntryMapper.list_to_record,
            name="log_weight",
        )
        saved = next((e for e in history if e.date == entry_date), pending)

        if self.profile_service is not None and history[-1].date == entry_date:
            await self.profile_service.update_profile(weight=saved.weight)
        return saved

    async def log_daily_entry(
        self,
        entry_date: date,
        mood: Union[Mood, str],
        symptoms: Iterable[str] = (),
        has_period: bool = False,
    ) -> DailyLog:
        """Save the log for entry_date, replacing any earlier one for that day.

        A period logged after the profile's last period start moves that date
        and drops the cached cycle insight.

        Raises:
            ValueError: Unknown mood
            RemoteWriteError: The upsert failed; logs and cache are restored
        """
        user_id = self.session.require_user()
        pending = DailyLog(
            date=entry_date,
            mood=Mood(mood),
            symptoms=tuple(symptoms),
            has_period=has_period,
            user_id=user_id,
        )

        async def upsert(logs: Tuple[DailyLog, ...]) -> Tuple[DailyLog, ...]:
            row = await self.remote.write(
                DAILY_LOGS_TABLE, DailyLogMapper.to_record(pending), on_conflict="user_id, date"
            )
            return replace_by_date(logs, DailyLogMapper.to_domain(row), newest_first=True)

        logs = await self.coordinator.mutate(
            self.daily_logs,
            lambda current: replace_by_date(current or (), pending, newest_first=True),
            upsert,
            cache_key=self.session.key(DAILY_LOGS_RESOURCE),
            encode=DailyLogMapper.list_to_record,
            name="log_daily_entry",
        )

        if has_period:
            await self._track_period_start(entry_date)
        return next((log for log in logs if log.date == entry_date), pending)

    async def _track_period_start(self, entry_date: date) -> None:
        if self.profile_service is None:
            return
        profile = self.profile_service.profile.value
        if profile is None or (profile.gender or "").lower() != "female":
            return
        last_start = profile.last_period_start_date
        if last_start is not None and entry_date <= last_start:
            return

        await self.profile_service.update_profile(last_period_start_date=entry_date)
        insight_key = self.session.key(CYCLE_INSIGHT_RESOURCE)
        if insight_key is not None:
            await self.cache.clear(insight_key)
        logger.debug(f"Period start for {self.session.user_id} moved to {entry_date}")
