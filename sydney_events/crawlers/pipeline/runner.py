import logging
from datetime import datetime, timedelta, timezone

from sydney_events.core.errors import PersistenceFailed
from sydney_events.crawlers.pipeline.changes import CONTENT_FIELDS, WRITABLE_FIELDS, ChangePolicy
from sydney_events.crawlers.pipeline.store import CatalogStore
from sydney_events.crawlers.pipeline.types import RawCandidate, SourceResult
from sydney_events.models.event import EventStatus

logger = logging.getLogger(__name__)

DEFAULT_FRESHNESS_WINDOW = timedelta(hours=6)
_CONTENT_DRIFT = ChangePolicy(name="content", fields=CONTENT_FIELDS)


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how DateTime columns round-trip."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _normalize_optional_text(value: str | None) -> str | None:
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None


def _normalize_candidate(candidate: RawCandidate) -> RawCandidate:
    # Mirror the trimming the catalog columns apply so unchanged input compares equal.
    candidate.title = candidate.title.strip()[:200]
    candidate.original_event_url = candidate.original_event_url.strip()
    candidate.venue_name = _normalize_optional_text(candidate.venue_name) or "TBD"
    candidate.address = _normalize_optional_text(candidate.address)
    candidate.description = _normalize_optional_text(candidate.description)
    if candidate.description is not None:
        candidate.description = candidate.description[:2000]
    candidate.category = _normalize_optional_text(candidate.category)
    candidate.image_url = _normalize_optional_text(candidate.image_url)
    candidate.city = _normalize_optional_text(candidate.city) or "Sydney"
    candidate.tags = [tag.strip() for tag in candidate.tags if tag and tag.strip()]
    return candidate


def _content_of(candidate: RawCandidate) -> dict:
    return {name: getattr(candidate, name) for name in WRITABLE_FIELDS}


def _reconcile_one(
    store: CatalogStore,
    candidate: RawCandidate,
    source: str,
    *,
    now: datetime,
    policy: ChangePolicy,
    result: SourceResult,
) -> None:
    existing = store.find_one(source, candidate.original_event_url)
    if existing is None:
        store.insert_one(
            {
                "source": source,
                "original_event_url": candidate.original_event_url,
                **_content_of(candidate),
                "status": EventStatus.new,
                "last_seen_at": now,
            }
        )
        result.new_count += 1
        return

    if policy.has_changes(existing, candidate):
        fields = {**_content_of(candidate), "last_seen_at": now}
        # Imported rows keep their status; only their content is refreshed.
        if existing.status != EventStatus.imported:
            fields["status"] = EventStatus.updated
        store.update_one(existing.id, fields)
        result.updated_count += 1
        logger.debug(
            "[reconcile] %s changed fields=%s",
            candidate.original_event_url,
            policy.changed_fields(existing, candidate),
        )
        return

    fields = {"last_seen_at": now}
    if _CONTENT_DRIFT.has_changes(existing, candidate):
        # Narrow policies still refresh cosmetic drift, without flagging the row.
        fields.update(_content_of(candidate))
    store.update_one(existing.id, fields)


def reconcile(
    candidates: list[RawCandidate],
    source: str,
    *,
    store: CatalogStore,
    now: datetime | None = None,
    policy: ChangePolicy | None = None,
    freshness_window: timedelta = DEFAULT_FRESHNESS_WINDOW,
) -> SourceResult:
    """Merge one source's fresh candidates into the catalog, then age out stale rows.

    Candidates are processed in order. A failure on one candidate is recorded in
    ``errors`` and does not stop the rest, and the inactive sweep always runs.
    """
    now = now or utcnow()
    policy = policy or ChangePolicy.any_content()
    result = SourceResult()

    for candidate in candidates:
        try:
            _reconcile_one(
                store,
                _normalize_candidate(candidate),
                source,
                now=now,
                policy=policy,
                result=result,
            )
        except Exception as exc:
            logger.warning(
                "[reconcile] %s candidate failed url=%s: %s",
                source,
                candidate.original_event_url,
                exc,
            )
            result.errors.append({"url": candidate.original_event_url, "error": str(exc)})

    cutoff = now - freshness_window
    try:
        result.inactive_count = store.mark_stale_inactive(source, cutoff)
    except PersistenceFailed as exc:
        logger.error("[reconcile] %s sweep failed: %s", source, exc)
        result.errors.append({"error": str(exc)})

    logger.info(
        "[reconcile] %s new=%d updated=%d inactive=%d errors=%d",
        source,
        result.new_count,
        result.updated_count,
        result.inactive_count,
        len(result.errors),
    )
    return result
