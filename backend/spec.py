"""
BEHAVIOURAL CONSTANTS
---------------------
Single source of truth for all behavioral invariants in the workbench.

Rules:
- If changing a value changes runtime behavior, it belongs here.
- No magic numbers elsewhere in the codebase.
- Other modules MUST import from this file.
"""

from __future__ import annotations

from typing import Final, Tuple

# =============================================================================
# Model completion request
# =============================================================================

MODEL_TEMPERATURE: Final[float] = 0.7
MODEL_MAX_TOKENS: Final[int] = 2000
MODEL_RESPONSE_FORMAT: Final[dict[str, str]] = {"type": "json_object"}

# Fields every proposal must carry
PROPOSAL_REQUIRED_FIELDS: Final[Tuple[str, ...]] = ("prompt", "summary")

# =============================================================================
# Persisted record shape
# =============================================================================

# Field names are "<mode><suffix>", e.g. customerGeneralPrompt
PROMPT_FIELD_SUFFIX: Final[str] = "GeneralPrompt"
AGENT_DATA_FIELD_SUFFIX: Final[str] = "AgentData"

AGENT_ID_KEY: Final[str] = "agent_id"
AGENT_LLM_ID_KEY: Final[str] = "llm_id"

# =============================================================================
# Voice call session
# =============================================================================

CALL_SAMPLE_RATE_HZ: Final[int] = 16_000
CALL_ENABLE_UPDATE: Final[bool] = True

# Seconds to wait for the provider socket to close on stop()
CALL_STOP_TIMEOUT_S: Final[float] = 5.0

# =============================================================================
# Provider endpoints
# =============================================================================

RETELL_API_BASE_URL_DEFAULT: Final[str] = "https://api.retellai.com"
RETELL_CREATE_WEB_CALL_PATH: Final[str] = "/v2/create-web-call"
RETELL_UPDATE_LLM_PATH: Final[str] = "/update-retell-llm/{llm_id}"
RETELL_REALTIME_URL_DEFAULT: Final[str] = "wss://api.retellai.com/audio-websocket/{call_id}"

HTTP_TIMEOUT_S: Final[float] = 15.0

GROQ_BASE_URL: Final[str] = "https://api.groq.com/openai/v1"

# =============================================================================
# User-facing notifications
# =============================================================================

NOTIFY_ERROR_DURATION_MS: Final[int] = 5_000
NOTIFY_SUCCESS_DURATION_MS: Final[int] = 3_000

# =============================================================================
# Templated variables
# =============================================================================

# Matches {{name}} and ${name} placeholders
TEMPLATE_VARIABLE_PATTERN: Final[str] = r"\{\{\s*[^{}]+?\s*\}\}|\$\{[^{}]+\}"

# =============================================================================
# Transport
# =============================================================================

USER_ID_HEADER: Final[str] = "x-user-id"
USER_ID_QUERY_PARAM: Final[str] = "user_id"
