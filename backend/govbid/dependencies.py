from __future__ import annotations

from functools import lru_cache

from .ai.contract_analysis import answer_chat_turn, generate_summary_from_text
from .db.dynamodb.table import get_main_table
from .infrastructure.analysis_backend_client import AnalysisBackendClient
from .infrastructure.sam_gov_client import SamGovClient
from .modules.bids.ledger import BidLedger
from .modules.chat.context_manager import ChatContextManager
from .modules.opportunities.view import OpportunityView
from .modules.summaries.cache import SummaryCache
from .modules.summaries.resolver import SummaryResolver
from .observability.logging import get_logger
from .repositories.blob_store import BlobStore, DynamoBlobStore, InMemoryBlobStore
from .sessions import BrowsingSession, SessionRegistry
from .settings import settings

log = get_logger("dependencies")


@lru_cache(maxsize=1)
def get_blob_store() -> BlobStore:
    if settings.ddb_table_name:
        return DynamoBlobStore(get_main_table())
    log.warning("blob_store_in_memory", reason="DDB_TABLE_NAME not set")
    return InMemoryBlobStore()


@lru_cache(maxsize=1)
def get_sam_gov_client() -> SamGovClient:
    return SamGovClient(
        api_key=settings.sam_gov_api_key,
        search_url=settings.sam_gov_search_url,
        lookback_days=settings.sam_gov_lookback_days,
        timeout_s=settings.sam_gov_timeout_s,
    )


@lru_cache(maxsize=1)
def get_analysis_backend() -> AnalysisBackendClient:
    return AnalysisBackendClient(
        base_url=settings.analysis_backend_url,
        timeout_s=settings.analysis_backend_timeout_s,
    )


@lru_cache(maxsize=1)
def get_chat_manager() -> ChatContextManager:
    if settings.normalized_chat_provider == "openai":
        send = answer_chat_turn
    else:
        send = get_analysis_backend().send_chat_turn
    return ChatContextManager(send_chat_turn=send, turn_wait_s=settings.chat_turn_wait_seconds)


@lru_cache(maxsize=1)
def get_bid_ledger() -> BidLedger:
    return BidLedger(get_blob_store())


@lru_cache(maxsize=1)
def get_session_registry() -> SessionRegistry:
    return SessionRegistry(
        ttl_seconds=settings.session_ttl_seconds,
        max_entries=settings.session_max_entries,
    )


def build_view(session: BrowsingSession, opportunity_id: str) -> OpportunityView:
    cache = SummaryCache(get_blob_store(), mirror=session.summaries)
    sam = get_sam_gov_client()
    backend = get_analysis_backend()
    resolver = SummaryResolver(
        cache=cache,
        fetch_description_text=sam.fetch_description_text,
        generate_from_links=backend.generate_summary_from_links,
        generate_from_text=generate_summary_from_text,
    )
    return OpportunityView(
        opportunity_id=opportunity_id,
        cache=cache,
        resolver=resolver,
        fetch_opportunity=sam.fetch_opportunity,
        chat=get_chat_manager(),
        ledger=get_bid_ledger(),
    )


def open_view(session: BrowsingSession, opportunity_id: str) -> OpportunityView:
    """The session's live view for `opportunity_id`, mounting a new one if needed."""
    return session.view(opportunity_id, lambda: build_view(session, opportunity_id))


def reset_dependencies() -> None:
    for fn in (
        get_blob_store,
        get_sam_gov_client,
        get_analysis_backend,
        get_chat_manager,
        get_bid_ledger,
        get_session_registry,
    ):
        fn.cache_clear()
