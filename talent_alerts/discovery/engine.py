"""Candidate discovery: who was interviewed recently?

Data flow:
  1. Evidence fetch: one ATS query per configured note type, created after
     the cutoff. A failing type is logged and skipped.
  2. Fallback chain: only when step 1 yields no candidate ids, try the
     configured fallbacks (``activities``, ``all_notes``) in order and stop at
     the first one that yields ids.
  3. Note details: list records are swapped for their full detail when
     enabled; a failed detail fetch keeps the list record.
  4. Extraction: strategies in ``extractors``; the application hop is the
     last resort for records where nothing else matched.
  5. Hydration: full candidate records in throttled batches; an id that
     cannot be fetched is dropped.
"""

import logging
import random
from collections.abc import Awaitable, Callable, Sequence
from datetime import date, timedelta
from typing import Any, TypeVar

from talent_alerts.clients.jobadder import JobAdderClient
from talent_alerts.core.batching import gather_in_batches
from talent_alerts.core.config import DiscoveryConfig
from talent_alerts.core.errors import PartialFetchError
from talent_alerts.core.schemas import Candidate
from talent_alerts.discovery.extractors import application_id, as_id, extract_from_record

logger = logging.getLogger(__name__)

T = TypeVar("T")

Record = dict[str, Any]


def select_random(pool: Sequence[T], k: int, rng: random.Random | None = None) -> list[T]:
    """Pick ``k`` distinct members of ``pool`` uniformly at random.

    A pool of ``k`` or fewer is returned whole, order preserved. Otherwise a
    Fisher-Yates shuffle runs over a copy and the first ``k`` are returned.
    """
    if len(pool) <= k:
        return list(pool)
    rng = rng or random.Random()
    shuffled = list(pool)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled[:k]


class CandidateDiscovery:
    """Reconciles interview evidence into hydrated candidate records."""

    def __init__(self, ats: JobAdderClient, config: DiscoveryConfig) -> None:
        self._ats = ats
        self._config = config
        self._fallbacks: dict[str, Callable[[date], Awaitable[list[Record]]]] = {
            "activities": self._activity_records,
            "all_notes": self._untyped_note_records,
        }

    async def discover_recently_interviewed(
        self,
        window_days: int | None = None,
        *,
        today: date | None = None,
    ) -> list[Candidate]:
        """Candidates with interview evidence in the last ``window_days`` days.

        An empty list means "no campaign material", not an error.
        """
        days = window_days if window_days is not None else self._config.window_days
        cutoff = (today or date.today()) - timedelta(days=days)
        logger.info("Discovering candidates interviewed since %s (%d days)", cutoff, days)

        candidate_ids = await self.collect_candidate_ids(cutoff)
        if not candidate_ids:
            logger.info("No interviewed candidates found since %s", cutoff)
            return []

        candidates = await self.hydrate(sorted(candidate_ids))
        logger.info(
            "Discovery complete: %d unique ids, %d candidate profiles",
            len(candidate_ids), len(candidates),
        )
        return candidates

    async def collect_candidate_ids(self, cutoff: date) -> set[int]:
        """Primary typed-note evidence, then the fallback chain if it found nobody."""
        records = await self._typed_note_records(cutoff)
        ids = await self.resolve_candidate_ids(await self._with_details(records))
        logger.info("Typed notes: %d records, %d unique candidates", len(records), len(ids))
        if ids:
            return ids

        for name in self._config.fallbacks:
            logger.info("No candidates from typed notes, trying fallback '%s'", name)
            try:
                records = await self._fallbacks[name](cutoff)
            except Exception as e:
                logger.warning("Fallback '%s' failed: %s", name, e)
                continue
            ids = await self.resolve_candidate_ids(await self._with_details(records))
            logger.info("Fallback '%s': %d records, %d unique candidates", name, len(records), len(ids))
            if ids:
                return ids
        return set()

    # ------------------------------------------------------------------
    # Evidence sources
    # ------------------------------------------------------------------

    async def _typed_note_records(self, cutoff: date) -> list[Record]:
        records: list[Record] = []
        for note_type in self._config.note_types:
            try:
                notes = await self._ats.search_notes(
                    cutoff, note_type=note_type, limit=self._config.page_limit,
                )
            except Exception as e:
                logger.warning("Could not fetch '%s' notes: %s", note_type, e)
                continue
            logger.info("Found %d '%s' notes", len(notes), note_type)
            records.extend(notes)
        return records

    async def _activity_records(self, cutoff: date) -> list[Record]:
        return await self._ats.search_activities(cutoff, limit=self._config.page_limit)

    async def _untyped_note_records(self, cutoff: date) -> list[Record]:
        notes = await self._ats.search_notes(cutoff, limit=self._config.page_limit)
        keywords = [kw.lower() for kw in self._config.fallback_keywords if kw.strip()]
        kept = [note for note in notes if _type_matches(note, keywords)]
        logger.info("Untyped note scan: kept %d of %d notes", len(kept), len(notes))
        return kept

    async def _with_details(self, records: list[Record]) -> list[Record]:
        """Replace list records by their full note detail where possible."""
        if not self._config.fetch_note_details:
            return records
        with_id = [r for r in records if as_id(r.get("noteId")) is not None]
        if not with_id:
            return records

        async def fetch(record: Record) -> Record:
            return await self._ats.get_note(record["noteId"])

        succeeded, failed = await gather_in_batches(
            with_id, fetch,
            batch_size=self._config.note_batch_size,
            pause_s=self._config.note_pause_s,
        )
        if failed:
            logger.debug("%d note detail fetches failed, using list records", len(failed))
        details = {id(record): {**record, **detail} for record, detail in succeeded}
        return [details.get(id(record), record) for record in records]

    # ------------------------------------------------------------------
    # Extraction and hydration
    # ------------------------------------------------------------------

    async def resolve_candidate_ids(self, records: list[Record]) -> set[int]:
        """All candidate ids in ``records``, following application links last."""
        ids: set[int] = set()
        unresolved: list[int] = []
        for record in records:
            if not isinstance(record, dict):
                continue
            found = extract_from_record(record)
            if found:
                ids |= found
                continue
            try:
                app_id = application_id(record)
            except Exception:
                app_id = None
            if app_id is not None:
                unresolved.append(app_id)

        if unresolved:
            succeeded, failed = await gather_in_batches(
                list(dict.fromkeys(unresolved)),
                self._ats.get_application,
                batch_size=self._config.note_batch_size,
                pause_s=self._config.note_pause_s,
            )
            for _, application in succeeded:
                found_id = as_id(application.get("candidateId")) if isinstance(application, dict) else None
                if found_id is None and isinstance(application, dict):
                    found_id = next(iter(extract_from_record(application)), None)
                if found_id is not None:
                    ids.add(found_id)
            if failed:
                logger.debug("%d application lookups failed", len(failed))
        return ids

    async def hydrate(self, candidate_ids: list[int]) -> list[Candidate]:
        """Fetch full records; ids that fail are logged and dropped."""
        succeeded, failed = await gather_in_batches(
            candidate_ids,
            self._ats.get_candidate,
            batch_size=self._config.hydration_batch_size,
            pause_s=self._config.hydration_pause_s,
        )
        if failed:
            for candidate_id, error in failed:
                logger.warning("Could not fetch candidate %s: %s", candidate_id, error)
            partial = PartialFetchError(
                f"{len(failed)} of {len(candidate_ids)} candidates could not be fetched",
                failed=[candidate_id for candidate_id, _ in failed],
            )
            logger.warning("%s", partial)
        return [candidate for _, candidate in succeeded]


def _type_matches(note: Record, keywords: list[str]) -> bool:
    note_type = note.get("type")
    if isinstance(note_type, dict):
        note_type = note_type.get("name")
    if not isinstance(note_type, str):
        return False
    lowered = note_type.lower()
    return any(kw in lowered for kw in keywords)
