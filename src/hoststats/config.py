"""Sampler configuration."""

from functools import lru_cache
from typing import Any, Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from hoststats.processes import DEFAULT_PROCESS_LIMIT, ProcessRanking
from hoststats.procfs import ProcfsSource
from hoststats.psutil_source import PsutilSource
from hoststats.source import CounterSource


class SamplerConfig(BaseSettings):
    """
    Settings for a ``SystemSampler``.

    Values passed to the constructor win; anything else is read from
    ``HOSTSTATS_*`` environment variables, then falls back to defaults.
    """

    source: Literal["psutil", "procfs"] = "psutil"
    proc_root: str = "/proc"  # procfs source only
    process_limit: int = DEFAULT_PROCESS_LIMIT
    ranking: ProcessRanking = ProcessRanking.MEMORY
    workers: int = 1

    model_config = SettingsConfigDict(
        env_prefix="HOSTSTATS_",
        extra="ignore",
        frozen=True,
    )

    @field_validator("source", "ranking", mode="before")
    @classmethod
    def _normalize_name(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("process_limit")
    @classmethod
    def _clamp_limit(cls, value: int) -> int:
        return max(0, value)

    @field_validator("workers")
    @classmethod
    def _clamp_workers(cls, value: int) -> int:
        return max(1, value)


def create_source(config: SamplerConfig) -> CounterSource:
    """Instantiate the counter source named by ``config``."""
    if config.source == "procfs":
        return ProcfsSource(config.proc_root)
    return PsutilSource()


@lru_cache
def get_config() -> SamplerConfig:
    """Process-wide config read once from the environment."""
    return SamplerConfig()
