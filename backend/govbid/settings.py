from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=None, extra="ignore")

    # Runtime
    environment: str = Field(default="development", validation_alias="NODE_ENV")
    port: int = Field(default=8080, validation_alias="PORT")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # CORS / Frontend
    frontend_base_url: str = Field(
        default="http://localhost:3000", validation_alias="FRONTEND_BASE_URL"
    )
    frontend_urls: str | None = Field(default=None, validation_alias="FRONTEND_URLS")

    # AWS / durable storage. Without a table name everything lives in process memory.
    aws_region: str = Field(default="us-east-1", validation_alias="AWS_REGION")
    ddb_table_name: str | None = Field(default=None, validation_alias="DDB_TABLE_NAME")

    # SAM.gov public API
    sam_gov_api_key: str | None = Field(default=None, validation_alias="SAM_GOV_API_KEY")
    sam_gov_search_url: str = Field(
        default="https://api.sam.gov/opportunities/v2/search",
        validation_alias="SAM_GOV_SEARCH_URL",
    )
    # Search window used when looking a notice up by id (postedFrom/postedTo are mandatory upstream).
    sam_gov_lookback_days: int = Field(default=364, validation_alias="SAM_GOV_LOOKBACK_DAYS")
    sam_gov_timeout_s: float = Field(default=20.0, validation_alias="SAM_GOV_TIMEOUT_S")

    # Solicitation analysis backend (document-corpus summaries + chat turns)
    analysis_backend_url: str = Field(
        default="https://backendgovai.onrender.com", validation_alias="ANALYSIS_BACKEND_URL"
    )
    analysis_backend_timeout_s: float = Field(
        default=180.0, validation_alias="ANALYSIS_BACKEND_TIMEOUT_S"
    )

    # Chat
    # "backend" forwards turns to the analysis backend, "openai" answers in-process.
    chat_provider: str = Field(default="backend", validation_alias="CHAT_PROVIDER")
    # How long a second turn waits for the in-flight one before it is rejected.
    chat_turn_wait_seconds: float = Field(default=120.0, validation_alias="CHAT_TURN_WAIT_SECONDS")

    # Browsing sessions (volatile, per-process)
    session_ttl_seconds: int = Field(default=4 * 60 * 60, validation_alias="SESSION_TTL_SECONDS")
    session_max_entries: int = Field(default=2048, validation_alias="SESSION_MAX_ENTRIES")

    # OpenAI
    openai_api_key: str | None = Field(default=None, validation_alias="OPENAI_API_KEY")
    openai_project_id: str | None = Field(default=None, validation_alias="OPENAI_PROJECT_ID")
    openai_organization_id: str | None = Field(default=None, validation_alias="OPENAI_ORG_ID")
    openai_model: str = Field(default="gpt-4o-mini", validation_alias="OPENAI_MODEL")
    openai_model_summary: str | None = Field(default=None, validation_alias="OPENAI_MODEL_SUMMARY")
    openai_model_chat: str | None = Field(default=None, validation_alias="OPENAI_MODEL_CHAT")
    # Guardrail: clamp max output tokens (prevents accidental cost explosions).
    openai_max_output_tokens_cap: int = Field(
        default=4000, validation_alias="OPENAI_MAX_OUTPUT_TOKENS_CAP"
    )

    # ---- helpers / derived flags ----
    @property
    def normalized_environment(self) -> str:
        v = (self.environment or "").strip().lower()
        if v in ("prod", "production"):
            return "production"
        if v in ("stage", "staging"):
            return "staging"
        if v in ("dev", "development"):
            return "development"
        return v or "development"

    @property
    def is_production(self) -> bool:
        return self.normalized_environment == "production"

    @property
    def normalized_chat_provider(self) -> str:
        v = (self.chat_provider or "").strip().lower()
        return "openai" if v == "openai" else "backend"

    def require_in_production(self) -> None:
        """
        Enforce required settings in production.

        Development/staging may run against in-memory storage and without
        upstream keys, production may not.
        """
        if not self.is_production:
            return

        missing: list[str] = []

        # Summaries and bids must survive restarts.
        if not self.ddb_table_name:
            missing.append("DDB_TABLE_NAME")
        if not self.sam_gov_api_key:
            missing.append("SAM_GOV_API_KEY")
        if not (self.analysis_backend_url and str(self.analysis_backend_url).strip()):
            missing.append("ANALYSIS_BACKEND_URL")
        # Inline descriptions are summarized with OpenAI.
        if not self.openai_api_key:
            missing.append("OPENAI_API_KEY")

        if missing:
            raise RuntimeError(
                "Missing required production environment variables: "
                + ", ".join(missing)
            )

    def to_log_safe_dict(self) -> dict[str, object]:
        """
        A redacted representation safe for structured logs / diagnostics.
        """
        def _has(v: object) -> bool:
            return v is not None and str(v).strip() != ""

        return {
            "environment": self.normalized_environment,
            "port": self.port,
            "frontend": {
                "frontend_base_url": self.frontend_base_url,
                "frontend_urls": self.frontend_urls,
            },
            "storage": {
                "aws_region": self.aws_region,
                "ddb_table_name": self.ddb_table_name,
                "backend": "dynamodb" if _has(self.ddb_table_name) else "memory",
            },
            "sessions": {
                "ttl_seconds": self.session_ttl_seconds,
                "max_entries": self.session_max_entries,
            },
            "integrations": {
                "sam_gov_api_key_configured": _has(self.sam_gov_api_key),
                "sam_gov_search_url": self.sam_gov_search_url,
                "analysis_backend_url": self.analysis_backend_url,
                "chat_provider": self.normalized_chat_provider,
                "openai_api_key_configured": _has(self.openai_api_key),
                "openai_project_id_configured": _has(self.openai_project_id),
                "openai_organization_id_configured": _has(self.openai_organization_id),
                "openai_model": self.openai_model,
            },
        }

    def openai_model_for(self, purpose: str) -> str:
        # Allow per-purpose override, else fall back to OPENAI_MODEL.
        purpose = (purpose or "").strip().lower()
        override_map = {
            "summary_from_text": self.openai_model_summary,
            "contract_chat": self.openai_model_chat,
        }
        ov = override_map.get(purpose)
        if ov and str(ov).strip():
            return str(ov).strip()
        return str(self.openai_model or "gpt-4o-mini").strip() or "gpt-4o-mini"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    s = Settings()
    s.require_in_production()
    return s


# Backwards-compatible module-level singleton.
settings = get_settings()
