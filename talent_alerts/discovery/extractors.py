"""Candidate reference extraction from loosely-typed ATS evidence records.

Note and activity payloads differ by record type, so a record is run through
an ordered list of extractor strategies. Each strategy returns the candidate
ids it can see (usually zero or one); a strategy that raises is treated as
having found nothing.

Strategy order:
  1. direct_candidate_id: ``candidateId`` on the record itself
  2. candidate_array: ``candidates: [{candidateId}, ...]``
  3. nested_candidate: ``candidate: {candidateId}``
  4. candidate_link: ``links.candidate`` URI matching ``/candidates/<id>``

The application hop (``links.application`` -> application record ->
``candidateId``) needs the network and lives in the discovery engine.
"""

import logging
import re
from collections.abc import Callable, Iterable
from typing import Any

logger = logging.getLogger(__name__)

CANDIDATE_URI_RE = re.compile(r"/candidates/(\d+)")
APPLICATION_URI_RE = re.compile(r"/applications/(\d+)")

CandidateExtractor = Callable[[dict[str, Any]], list[int]]


def as_id(value: Any) -> int | None:
    """Coerce an upstream id (int or digit string) to int; None otherwise."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str) and value.strip().isdigit():
        parsed = int(value.strip())
        return parsed if parsed > 0 else None
    return None


def _link(record: dict[str, Any], name: str) -> str | None:
    links = record.get("links")
    if not isinstance(links, dict):
        return None
    value = links.get(name)
    if isinstance(value, dict):
        value = value.get("href")
    return value if isinstance(value, str) else None


def direct_candidate_id(record: dict[str, Any]) -> list[int]:
    found = as_id(record.get("candidateId"))
    return [found] if found is not None else []


def candidate_array(record: dict[str, Any]) -> list[int]:
    candidates = record.get("candidates")
    if not isinstance(candidates, list):
        return []
    ids = []
    for entry in candidates:
        if isinstance(entry, dict):
            found = as_id(entry.get("candidateId"))
            if found is not None:
                ids.append(found)
    return ids


def nested_candidate(record: dict[str, Any]) -> list[int]:
    candidate = record.get("candidate")
    if not isinstance(candidate, dict):
        return []
    found = as_id(candidate.get("candidateId"))
    return [found] if found is not None else []


def candidate_link(record: dict[str, Any]) -> list[int]:
    uri = _link(record, "candidate")
    if not uri:
        return []
    match = CANDIDATE_URI_RE.search(uri)
    return [int(match.group(1))] if match else []


EXTRACTORS: tuple[CandidateExtractor, ...] = (
    direct_candidate_id,
    candidate_array,
    nested_candidate,
    candidate_link,
)


def extract_from_record(
    record: dict[str, Any],
    extractors: Iterable[CandidateExtractor] = EXTRACTORS,
) -> set[int]:
    """Union of the ids every strategy finds on one record."""
    found: set[int] = set()
    for extractor in extractors:
        try:
            found.update(extractor(record))
        except Exception:
            logger.debug(
                "Extractor %s failed on record %s, skipping",
                getattr(extractor, "__name__", extractor), record.get("noteId"),
                exc_info=True,
            )
    return found


def extract_candidate_ids(records: Iterable[dict[str, Any]]) -> set[int]:
    """Deduplicated candidate ids reachable from ``records`` without network hops."""
    ids: set[int] = set()
    for record in records:
        if isinstance(record, dict):
            ids |= extract_from_record(record)
    return ids


def application_id(record: dict[str, Any]) -> int | None:
    """Application id from ``links.application`` or an ``applicationId`` field."""
    direct = as_id(record.get("applicationId"))
    if direct is not None:
        return direct
    uri = _link(record, "application")
    if not uri:
        return None
    match = APPLICATION_URI_RE.search(uri)
    return int(match.group(1)) if match else None
