"""Error taxonomy for tribunal runs.

Fatal errors (ConfigurationError, stage-level OracleError/SchemaViolation,
RunTimeout) abort the run with no final verdict. ProviderError and per-item
OracleError are recovered inside the evidence gatherer.
"""

from __future__ import annotations


class TribunalError(Exception):
    """Base class for all tribunal errors."""


class ConfigurationError(TribunalError):
    """A required collaborator or setting is missing or invalid."""


class ProviderError(TribunalError):
    """The search provider failed or returned an unusable response."""


class OracleError(TribunalError):
    """The reasoning oracle failed at the transport level or timed out."""


class SchemaViolation(OracleError):
    """Oracle output did not satisfy its contract, even after correction."""

    def __init__(self, role: str, violations: list[str]) -> None:
        self.role = role
        self.violations = list(violations)
        detail = "; ".join(self.violations[:5])
        super().__init__(f"{role} output violated its contract: {detail}")


class RunTimeout(TribunalError):
    """The run-level deadline elapsed before the case was decided."""
