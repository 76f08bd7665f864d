"""
Application configuration.

Responsibilities:
- Load deployment-specific configuration
- Read environment variables
- Provide a typed, immutable config object

Non-responsibilities:
- No workflow logic
- No protocol constants (see spec.py)
- No runtime mutation
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from spec import RETELL_API_BASE_URL_DEFAULT, RETELL_REALTIME_URL_DEFAULT


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable application configuration.

    Constructed once at process startup.
    Passed downward to the server and the per-connection gateway.
    """

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    env: str

    # ------------------------------------------------------------------
    # LLM configuration
    # ------------------------------------------------------------------

    llm_provider: str
    llm_model: str
    openai_api_key: str | None

    groq_api_key: str | None

    # ------------------------------------------------------------------
    # Call provider
    # ------------------------------------------------------------------

    retell_api_key: str | None
    retell_base_url: str
    retell_realtime_url: str

    # "retell" pushes committed prompts to the agent's LLM; "none" skips it
    apply_backend: str

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    # "memory" or "json"
    store_backend: str
    store_path: str

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    enable_json_logs: bool

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @staticmethod
    def load_from_env() -> AppConfig:
        """
        Load configuration from environment variables.

        Credentials are never defaulted; a missing key surfaces when the
        adapter that needs it is built.
        """
        return AppConfig(
            env=os.environ.get("ENV", "dev"),

            llm_provider=os.environ.get("LLM_PROVIDER", "openai"),
            llm_model=os.environ.get("LLM_MODEL", "gpt-4o"),
            openai_api_key=os.environ.get("OPENAI_API_KEY"),
            groq_api_key=os.environ.get("GROQ_API_KEY"),

            retell_api_key=os.environ.get("RETELL_API_KEY"),
            retell_base_url=os.environ.get("RETELL_BASE_URL", RETELL_API_BASE_URL_DEFAULT),
            retell_realtime_url=os.environ.get("RETELL_REALTIME_URL", RETELL_REALTIME_URL_DEFAULT),
            apply_backend=os.environ.get("APPLY_BACKEND", "retell"),

            store_backend=os.environ.get("STORE_BACKEND", "json"),
            store_path=os.environ.get("STORE_PATH", "data/users.json"),

            enable_json_logs=os.environ.get("ENABLE_JSON_LOGS", "1") == "1",
        )
