"""Incremental draw sync: discover, diff against storage, fetch, parse, commit."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from loto_harvest.constants import (
    DEFAULT_ID_PATTERN,
    DEFAULT_OPTION_SELECTOR,
    DEFAULT_PARSER_SELECTORS,
)
from loto_harvest.errors import (
    DuplicateDrawError,
    InsufficientDataError,
    TransportError,
    ValidationError,
)
from loto_harvest.repositories.draw_repository import DrawRecord, DrawRepository
from loto_harvest.services.draw_locator import (
    DrawLocator,
    DrawReference,
    EnumerationLocator,
    IndexPageLocator,
)
from loto_harvest.services.draw_parser import DrawParser, ParsedDraw
from loto_harvest.services.upstream import Throttle, UpstreamClient, build_http_session

logger = logging.getLogger(__name__)

Progress = Callable[[Iterable[DrawReference]], Iterable[DrawReference]]


@dataclass(frozen=True)
class SyncResult:
    added_count: int
    added_ids: list[int]
    added_sequence_ids: list[int]
    discovered_count: int
    missing_count: int
    skipped_ids: list[int] = field(default_factory=list)
    cancelled: bool = False


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DrawSyncService:
    """Bring storage up to date with the draws advertised upstream.

    Draws are processed one at a time in ascending order. A draw that fails to
    fetch or parse is skipped and stays missing, so the next run retries it.
    Locator failures and storage failures abort the run.
    """

    def __init__(
        self,
        repository: DrawRepository,
        locator: DrawLocator,
        client: UpstreamClient,
        parser: DrawParser | None = None,
        *,
        commit_attempts: int = 3,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if commit_attempts < 1:
            raise ValidationError("commit_attempts must be >= 1")
        self._repo = repository
        self._locator = locator
        self._client = client
        self._parser = parser or DrawParser()
        self._commit_attempts = int(commit_attempts)
        self._clock = clock

    @classmethod
    def from_config(cls, config: Mapping[str, Any], repository: DrawRepository) -> "DrawSyncService":
        """Wire a service from Flask-style configuration."""

        http = build_http_session(
            retries=int(config.get("UPSTREAM_RETRIES", 0)),
            backoff_factor=float(config.get("UPSTREAM_BACKOFF", 0.3)),
            user_agent=str(config.get("UPSTREAM_USER_AGENT") or "Mozilla/5.0 (compatible; PiyangoBot/1.0)"),
        )
        client = UpstreamClient(
            http,
            timeout_seconds=float(config.get("UPSTREAM_TIMEOUT_SECONDS", 15.0)),
            throttle=Throttle(float(config.get("UPSTREAM_DELAY_SECONDS", 0.5))),
        )

        template = str(config["UPSTREAM_DRAW_URL_TEMPLATE"])
        strategy = str(config.get("LOCATOR_STRATEGY", "enumeration")).lower().strip()
        locator: DrawLocator
        if strategy == "index":
            locator = IndexPageLocator(
                client,
                template,
                tuple(config.get("UPSTREAM_INDEX_URLS") or ()),
                id_pattern=str(config.get("LOCATOR_ID_PATTERN") or DEFAULT_ID_PATTERN),
                option_selector=str(config.get("LOCATOR_OPTION_SELECTOR") or DEFAULT_OPTION_SELECTOR),
            )
        elif strategy == "enumeration":
            locator = EnumerationLocator(
                client,
                template,
                start_id=int(config.get("LOCATOR_START_ID", 1)),
                max_probe=int(config.get("LOCATOR_MAX_PROBE", 500)),
                max_misses=int(config.get("LOCATOR_MAX_MISSES", 3)),
            )
        else:
            raise ValidationError(
                message="Invalid locator strategy",
                details={"LOCATOR_STRATEGY": ["Must be one of enumeration|index"]},
            )

        parser = DrawParser(
            tuple(config.get("PARSER_SELECTORS") or DEFAULT_PARSER_SELECTORS),
            bonus_categories=tuple(config.get("BONUS_CATEGORIES") or ("joker", "superstar")),
            number_format=str(config.get("NUMBER_FORMAT", "int")),
        )
        return cls(
            repository,
            locator,
            client,
            parser,
            commit_attempts=int(config.get("SYNC_COMMIT_ATTEMPTS", 3)),
        )

    def find_missing(self) -> tuple[list[DrawReference], list[DrawReference]]:
        """Return (all upstream references, references not yet stored)."""

        references = list(self._locator.locate())
        stored = self._repo.find_existing_source_urls(r.url for r in references)
        missing = [r for r in references if r.url not in stored]
        return references, missing

    def _commit(self, ref: DrawReference, parsed: ParsedDraw) -> int | None:
        """Insert one draw. Returns its sequence id, or None if it was already stored."""

        for attempt in range(1, self._commit_attempts + 1):
            record = DrawRecord(
                sequence_id=self._repo.max_sequence_id() + 1,
                source_url=ref.url,
                source_id=ref.draw_id,
                main_numbers=parsed.main_numbers,
                bonus_numbers=dict(parsed.bonus_numbers),
                fetched_at=self._clock(),
                published_label=ref.published_label,
            )
            try:
                self._repo.insert(record)
                return record.sequence_id
            except DuplicateDrawError:
                if self._repo.find_existing_source_urls([ref.url]):
                    logger.debug("Draw %s already stored by another run", ref.draw_id)
                    return None
                # Another run took this sequence id for a different draw.
                logger.info(
                    "Sequence id %s taken while storing draw %s (attempt %s/%s)",
                    record.sequence_id,
                    ref.draw_id,
                    attempt,
                    self._commit_attempts,
                )

        raise DuplicateDrawError(
            message=f"Could not allocate a sequence id for draw {ref.draw_id}",
            details={"source_url": ref.url},
        )

    def sync(
        self,
        *,
        cancel: threading.Event | None = None,
        progress: Progress | None = None,
    ) -> SyncResult:
        references, missing = self.find_missing()
        logger.info("Sync: %s draws upstream, %s missing", len(references), len(missing))

        added_ids: list[int] = []
        added_sequence_ids: list[int] = []
        skipped_ids: list[int] = []
        cancelled = False

        items: Iterable[DrawReference] = progress(missing) if progress else missing
        for ref in items:
            if cancel is not None and cancel.is_set():
                logger.info("Sync cancelled before draw %s", ref.draw_id)
                cancelled = True
                break

            body = ref.body
            if body is None:
                try:
                    body = self._client.fetch(ref.url)
                except TransportError as exc:
                    logger.warning("Skipping draw %s: %s", ref.draw_id, exc)
                    skipped_ids.append(ref.draw_id)
                    continue

            try:
                parsed = self._parser.parse(body)
            except InsufficientDataError as exc:
                logger.warning("Skipping draw %s: %s", ref.draw_id, exc)
                skipped_ids.append(ref.draw_id)
                continue

            try:
                sequence_id = self._commit(ref, parsed)
            except DuplicateDrawError as exc:
                logger.warning("Skipping draw %s: %s", ref.draw_id, exc)
                skipped_ids.append(ref.draw_id)
                continue
            if sequence_id is None:
                continue

            logger.info(
                "Stored draw %s as #%s via %s: %s %s",
                ref.draw_id,
                sequence_id,
                parsed.strategy,
                list(parsed.main_numbers),
                parsed.bonus_numbers,
            )
            added_ids.append(ref.draw_id)
            added_sequence_ids.append(sequence_id)

        logger.info("Sync finished: %s new draws", len(added_ids))
        return SyncResult(
            added_count=len(added_ids),
            added_ids=added_ids,
            added_sequence_ids=added_sequence_ids,
            discovered_count=len(references),
            missing_count=len(missing),
            skipped_ids=skipped_ids,
            cancelled=cancelled,
        )
