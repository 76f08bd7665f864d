"""
FastAPI app factory.

Responsibilities:
- Create and configure FastAPI app
- Set up middleware and logging
- Initialize shared resources (LLM client, store, applier) once per process
- Register routes

Per-connection resources (call provider, controllers) are built by the
gateway through app.state.call_provider_factory.
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from openai import AsyncOpenAI

from adapters.apply.base import AgentApplier, NoopAgentApplier
from adapters.apply.retell import RetellAgentApplier
from adapters.calls.base import AudioSink, CallProvider
from adapters.calls.retell import RetellCallProvider
from adapters.llm.base import LLMClient
from adapters.llm.openai_chat import OpenAIChatClient
from adapters.persistence.base import PersistenceGateway
from adapters.persistence.json_file import JsonFilePersistenceGateway
from adapters.persistence.memory import InMemoryPersistenceGateway
from config import AppConfig
from observability import logger
from observability.logger import log_event
from server.routes import register_routes
from session.gateway import CallProviderFactory
from spec import GROQ_BASE_URL


def create_app(
    config: AppConfig | None = None,
    *,
    llm: LLMClient | None = None,
    persistence: PersistenceGateway | None = None,
    applier: AgentApplier | None = None,
    call_provider_factory: CallProviderFactory | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Any collaborator passed in is used as-is; the rest are built from
    config. Tests inject fakes this way.
    """
    if config is None:
        config = AppConfig.load_from_env()

    logger.configure(enabled=config.enable_json_logs)

    app = FastAPI(title="Prompt Workbench API")

    app.state.config = config

    # Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Shared resources, built ONCE per process
    if persistence is None:
        persistence = build_persistence(config)
    app.state.persistence = persistence
    app.state.llm = llm if llm is not None else build_llm_client(config)
    app.state.applier = applier if applier is not None else build_applier(config, persistence)
    app.state.call_provider_factory = (
        call_provider_factory
        if call_provider_factory is not None
        else build_call_provider_factory(config)
    )

    # Routes
    register_routes(app)

    log_event({
        "event_type": "APP_CREATED",
        "env": config.env,
        "llm_provider": config.llm_provider,
        "store_backend": config.store_backend,
        "apply_backend": config.apply_backend,
    })

    return app


def build_llm_client(config: AppConfig) -> LLMClient:
    """Build a completion client with the provider selected by environment variables."""
    if config.llm_provider.lower() == "groq":
        if not config.groq_api_key:
            raise RuntimeError("GROQ_API_KEY environment variable not set")
        vendor = AsyncOpenAI(api_key=config.groq_api_key, base_url=GROQ_BASE_URL)
    else:
        if not config.openai_api_key:
            raise RuntimeError("OPENAI_API_KEY environment variable not set")
        vendor = AsyncOpenAI(api_key=config.openai_api_key)

    return OpenAIChatClient(client=vendor, model=config.llm_model)


def build_persistence(config: AppConfig) -> PersistenceGateway:
    if config.store_backend == "memory":
        return InMemoryPersistenceGateway()
    if config.store_backend == "json":
        return JsonFilePersistenceGateway(config.store_path)
    raise RuntimeError(f"Unknown STORE_BACKEND: {config.store_backend}")


def build_applier(config: AppConfig, persistence: PersistenceGateway) -> AgentApplier:
    if config.apply_backend == "none":
        return NoopAgentApplier()
    if config.apply_backend == "retell":
        return RetellAgentApplier(
            persistence=persistence,
            api_key=_require_retell_key(config),
            base_url=config.retell_base_url,
        )
    raise RuntimeError(f"Unknown APPLY_BACKEND: {config.apply_backend}")


def build_call_provider_factory(config: AppConfig) -> CallProviderFactory:
    api_key = _require_retell_key(config)

    def factory(audio_sink: AudioSink) -> CallProvider:
        # One provider per connection, owned by its CallSessionController
        return RetellCallProvider(
            api_key=api_key,
            base_url=config.retell_base_url,
            realtime_url=config.retell_realtime_url,
            audio_sink=audio_sink,
        )

    return factory


def _require_retell_key(config: AppConfig) -> str:
    if not config.retell_api_key:
        raise RuntimeError("RETELL_API_KEY environment variable not set")
    return config.retell_api_key
