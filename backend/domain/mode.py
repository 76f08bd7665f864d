"""
Configuration mode enumeration.

Mode answers: "Which configuration variant is being edited or tested?"
It selects both the persisted prompt field and the agent data field.
"""

from __future__ import annotations

from enum import Enum

from spec import AGENT_DATA_FIELD_SUFFIX, PROMPT_FIELD_SUFFIX


class Mode(str, Enum):
    """
    Operating context of the agent being edited.

    CUSTOMER:
        The agent that answers inbound customer calls.

    SUPPLIER:
        The agent that places or takes calls with suppliers.
    """

    CUSTOMER = "customer"
    SUPPLIER = "supplier"

    @property
    def prompt_field(self) -> str:
        """Record field holding this mode's general prompt."""
        return f"{self.value}{PROMPT_FIELD_SUFFIX}"

    @property
    def agent_data_field(self) -> str:
        """Record field holding this mode's agent data object."""
        return f"{self.value}{AGENT_DATA_FIELD_SUFFIX}"


DEFAULT_MODE: Mode = Mode.CUSTOMER
