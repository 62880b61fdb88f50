from __future__ import annotations

from typing import Any, Callable

from ...errors import AcquisitionError, FetchError, GenerationError
from ...observability.logging import get_logger
from ..opportunities.schemas import Opportunity, SummaryDocument, summary_meta
from .cache import SummaryCache

log = get_logger("summary_resolver")

DOCUMENT_CORPUS = "document_corpus"
INLINE_DESCRIPTION = "inline_description"

FetchDescriptionText = Callable[[str], str]
GenerateFromLinks = Callable[[list[str]], Any]
GenerateFromText = Callable[[str], Any]


def choose_strategy(opportunity: Opportunity) -> str:
    return DOCUMENT_CORPUS if opportunity.resourceLinks else INLINE_DESCRIPTION


def merge_meta(raw: dict[str, Any], opportunity: Opportunity) -> SummaryDocument:
    # Meta always wins over same-named keys the model produced.
    return {**raw, **summary_meta(opportunity)}


class SummaryResolver:
    def __init__(
        self,
        *,
        cache: SummaryCache,
        fetch_description_text: FetchDescriptionText,
        generate_from_links: GenerateFromLinks,
        generate_from_text: GenerateFromText,
    ):
        self._cache = cache
        self._fetch_description_text = fetch_description_text
        self._generate_from_links = generate_from_links
        self._generate_from_text = generate_from_text

    def _acquire(self, opportunity: Opportunity, strategy: str) -> Any:
        if strategy == DOCUMENT_CORPUS:
            return self._generate_from_links(list(opportunity.resourceLinks))

        source = str(opportunity.descriptionSource or "").strip()
        if not source:
            raise AcquisitionError(
                "Opportunity has no document source to summarize",
                opportunity_id=opportunity.id,
                strategy=strategy,
            )
        text = self._fetch_description_text(source)
        if not str(text or "").strip():
            raise AcquisitionError(
                "Opportunity description is empty",
                opportunity_id=opportunity.id,
                strategy=strategy,
            )
        return self._generate_from_text(text)

    def resolve(self, opportunity: Opportunity) -> SummaryDocument:
        """
        Produce the normalized summary for `opportunity` and offer it to the cache.

        The returned value is this call's own result even when another writer
        stored first; re-read the cache when the stored copy must be used.
        """
        strategy = choose_strategy(opportunity)
        log.info(
            "summary_resolve_started",
            opportunity_id=opportunity.id,
            strategy=strategy,
            resource_links=len(opportunity.resourceLinks),
        )
        try:
            raw = self._acquire(opportunity, strategy)
        except (FetchError, GenerationError) as e:
            log.warning(
                "summary_resolve_failed",
                opportunity_id=opportunity.id,
                strategy=strategy,
                error=str(e),
                error_type=e.__class__.__name__,
            )
            raise AcquisitionError(
                "Failed to generate summary", opportunity_id=opportunity.id, strategy=strategy
            ) from e

        if not isinstance(raw, dict) or not raw:
            log.warning(
                "summary_resolve_empty",
                opportunity_id=opportunity.id,
                strategy=strategy,
                result_type=type(raw).__name__,
            )
            raise AcquisitionError(
                "Failed to generate summary", opportunity_id=opportunity.id, strategy=strategy
            )

        merged = merge_meta(raw, opportunity)
        if not self._cache.put_if_absent(opportunity.id, merged):
            log.info("summary_resolve_lost_race", opportunity_id=opportunity.id, strategy=strategy)
        return merged
