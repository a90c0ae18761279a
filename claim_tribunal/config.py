"""Settings loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from claim_tribunal.contracts import Confidence


def _load_env() -> None:
    """Load .env from project root if it exists."""
    env_path = Path(__file__).resolve().parent.parent / ".env"
    if env_path.exists():
        load_dotenv(env_path)


_load_env()

MAX_ROUNDS_CEILING = 6


@dataclass(frozen=True)
class Settings:
    # API Keys
    anthropic_api_key: str = field(default_factory=lambda: os.environ.get("ANTHROPIC_API_KEY", ""))
    serper_api_key: str = field(default_factory=lambda: os.environ.get("SERPER_API_KEY", ""))
    tavily_api_key: str = field(default_factory=lambda: os.environ.get("TAVILY_API_KEY", ""))

    # Search
    search_backend: str = field(
        default_factory=lambda: os.environ.get("SEARCH_BACKEND", "serper")
    )

    # Models
    oracle_model: str = field(
        default_factory=lambda: os.environ.get("ORACLE_MODEL", "claude-sonnet-4-6")
    )
    fallback_model: str = field(default_factory=lambda: os.environ.get("FALLBACK_MODEL", ""))

    # Rounds
    max_rounds: int = field(default_factory=lambda: int(os.environ.get("MAX_ROUNDS", "3")))
    stop_confidence: str = field(
        default_factory=lambda: os.environ.get("STOP_CONFIDENCE", "high").lower()
    )
    min_delta: float = field(default_factory=lambda: float(os.environ.get("MIN_DELTA", "2")))
    early_stop: bool = field(
        default_factory=lambda: os.environ.get("EARLY_STOP", "true").lower() == "true"
    )

    # Evidence
    max_results_per_side: int = field(
        default_factory=lambda: int(os.environ.get("MAX_RESULTS_PER_SIDE", "3"))
    )
    snippet_max_length: int = field(
        default_factory=lambda: int(os.environ.get("SNIPPET_MAX_LENGTH", "400"))
    )
    summary_max_length: int = field(
        default_factory=lambda: int(os.environ.get("SUMMARY_MAX_LENGTH", "500"))
    )
    query_max_length: int = field(
        default_factory=lambda: int(os.environ.get("QUERY_MAX_LENGTH", "300"))
    )

    # Oracle contracts
    schema_retries: int = field(
        default_factory=lambda: int(os.environ.get("SCHEMA_RETRIES", "1"))
    )

    # Timeouts (seconds)
    oracle_timeout: float = field(
        default_factory=lambda: float(os.environ.get("ORACLE_TIMEOUT", "60"))
    )
    search_timeout: float = field(
        default_factory=lambda: float(os.environ.get("SEARCH_TIMEOUT", "20"))
    )
    run_timeout: float = field(
        default_factory=lambda: float(os.environ.get("RUN_TIMEOUT", "900"))
    )

    # Concurrency
    max_concurrent_requests: int = field(
        default_factory=lambda: int(os.environ.get("MAX_CONCURRENT_REQUESTS", "5"))
    )

    # Run event log
    run_log_dir: str = field(default_factory=lambda: os.environ.get("RUN_LOG_DIR", "runs/"))

    def available_backends(self) -> list[str]:
        """Return list of search backends that have valid configuration."""
        backends = []
        if self.serper_api_key:
            backends.append("serper")
        if self.tavily_api_key:
            backends.append("tavily")
        return backends

    def validate_run(self) -> list[str]:
        """Validate the per-run knobs consumed by the round controller."""
        errors = []
        if not 1 <= self.max_rounds <= MAX_ROUNDS_CEILING:
            errors.append(f"MAX_ROUNDS must be 1-{MAX_ROUNDS_CEILING}, got {self.max_rounds}")
        valid_levels = [c.value for c in Confidence]
        if self.stop_confidence not in valid_levels:
            errors.append(
                f"STOP_CONFIDENCE must be one of {valid_levels}, got '{self.stop_confidence}'"
            )
        if self.min_delta < 0:
            errors.append(f"MIN_DELTA must be >= 0, got {self.min_delta}")
        if self.max_results_per_side < 1:
            errors.append("MAX_RESULTS_PER_SIDE must be >= 1")
        if self.snippet_max_length < 1 or self.summary_max_length < 1:
            errors.append("SNIPPET_MAX_LENGTH and SUMMARY_MAX_LENGTH must be >= 1")
        if self.schema_retries < 0:
            errors.append("SCHEMA_RETRIES must be >= 0")
        return errors

    def validate(self) -> list[str]:
        """Return list of validation errors. Empty list means valid."""
        errors = []
        if not self.anthropic_api_key:
            errors.append("ANTHROPIC_API_KEY is required")
        if self.search_backend not in ("serper", "tavily"):
            errors.append(
                f"SEARCH_BACKEND must be 'serper' or 'tavily', got '{self.search_backend}'"
            )
        elif self.search_backend not in self.available_backends():
            errors.append(f"{self.search_backend.upper()}_API_KEY is required")
        if self.max_concurrent_requests < 1:
            errors.append("MAX_CONCURRENT_REQUESTS must be >= 1")
        errors.extend(self.validate_run())
        return errors

    def warnings(self) -> list[str]:
        """Return list of non-fatal configuration warnings."""
        warns: list[str] = []
        if self.max_results_per_side > 10:
            warns.append(
                f"MAX_RESULTS_PER_SIDE={self.max_results_per_side} fans out one oracle call "
                "per result. Concurrency is still capped by MAX_CONCURRENT_REQUESTS."
            )
        if self.oracle_timeout * 5 * self.max_rounds > self.run_timeout:
            warns.append(
                f"RUN_TIMEOUT={self.run_timeout}s may be too short for {self.max_rounds} "
                f"round(s) at ORACLE_TIMEOUT={self.oracle_timeout}s per stage."
            )
        return warns


def get_settings() -> Settings:
    """Create Settings from current environment."""
    return Settings()
