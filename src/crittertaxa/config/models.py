"""Configuration models for crittertaxa.

This module contains all configuration-related Pydantic models used throughout the application.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator

from crittertaxa.taxonomy.group_name import GroupName


class LoggingConfig(BaseModel):
    """Structlog-based logging configuration."""

    level: str = "WARNING"
    json_logs: bool = False
    include_caller: bool = False  # Include file:line info (useful for debugging)
    extra_fields: dict[str, str] = Field(default_factory=lambda: {"service": "crittertaxa"})


class RateLimitConfig(BaseModel):
    """Request budget for one upstream service."""

    requests_per_minute: int = Field(default=60, ge=1)
    jitter_min_ms: int = Field(default=50, ge=0)
    jitter_max_ms: int = Field(default=250, ge=0)

    @model_validator(mode="after")
    def validate_jitter(self) -> "RateLimitConfig":
        """Ensure the jitter range is not inverted."""
        if self.jitter_min_ms > self.jitter_max_ms:
            raise ValueError(
                f"jitter_min_ms ({self.jitter_min_ms}) must not exceed "
                f"jitter_max_ms ({self.jitter_max_ms})"
            )
        return self


class INaturalistConfig(BaseModel):
    """iNaturalist API v2 settings."""

    base_url: str = "https://api.inaturalist.org/v2"
    batch_size: int = Field(default=25, ge=1, le=500)  # Ids per bulk lookup request
    timeout: float = 30.0
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)


class GlobalNamesConfig(BaseModel):
    """Global Names verifier settings."""

    verifier_url: str = "https://verifier.globalnames.org/api/v1/verifications"
    data_sources: list[int] = Field(default_factory=lambda: [9, 11])  # WoRMS, GBIF
    freshness_days: int = Field(default=90, ge=0)
    timeout: float = 30.0
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)


class CritterCategoryConfig(BaseModel):
    """Override policy applied while deriving group names.

    - group_names: rename table keyed by the display string of the final group
    - ignored_common_names: common names skipped at a rank (only "class" is consulted)
    - preferred_higher_ranks: groups that must not be replaced by an ancestor at a rank
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    group_names: dict[str, str] = Field(default_factory=dict)
    ignored_common_names: dict[str, set[str]] = Field(default_factory=dict)
    preferred_higher_ranks: dict[str, set[GroupName]] = Field(default_factory=dict)

    @field_validator("preferred_higher_ranks", mode="before")
    @classmethod
    def parse_group_names(cls, v: Any) -> Any:  # noqa: ANN401
        """Convert ``{rank: [{variant: text}, ...]}`` mappings into GroupName sets."""
        if v is None:
            return {}
        if not isinstance(v, dict):
            raise ValueError("preferred_higher_ranks must be a mapping of rank to group names")
        return {
            str(rank).lower(): {GroupName.parse(item) for item in (items or [])}
            for rank, items in v.items()
        }

    @field_validator("ignored_common_names", mode="before")
    @classmethod
    def lower_rank_keys(cls, v: Any) -> Any:  # noqa: ANN401
        """Accept null sections and normalize rank keys."""
        if v is None:
            return {}
        if isinstance(v, dict):
            return {str(rank).lower(): set(names or []) for rank, names in v.items()}
        return v

    @field_serializer("preferred_higher_ranks")
    def serialize_group_names(self, v: dict[str, set[GroupName]]) -> dict[str, list[Any]]:
        return {rank: [group.to_config() for group in sorted(groups)] for rank, groups in v.items()}

    @field_serializer("ignored_common_names")
    def serialize_ignored(self, v: dict[str, set[str]]) -> dict[str, list[str]]:
        return {rank: sorted(names) for rank, names in v.items()}

    def prefers_higher(self, group: GroupName, rank: str) -> bool:
        """Whether ``group`` is pinned and must not be refined by an ancestor at ``rank``."""
        return group in self.preferred_higher_ranks.get(rank, set())

    def is_ignored(self, rank: str, common_name: str) -> bool:
        """Whether ``common_name`` must be skipped at ``rank``."""
        wanted = common_name.casefold()
        return any(name.casefold() == wanted for name in self.ignored_common_names.get(rank, ()))

    def renamed(self, group: GroupName) -> str | None:
        """Replacement display name for a final group, if configured."""
        display = str(group).casefold()
        for key, replacement in self.group_names.items():
            if key.casefold() == display:
                return replacement
        return None


class CritterConfig(BaseModel):
    """Critter-related settings."""

    categories: CritterCategoryConfig = Field(default_factory=CritterCategoryConfig)


class ToolboxConfig(BaseModel):
    """Configuration settings for the crittertaxa application."""

    # Version tracking
    config_version: str = "1.0.0"

    offline: bool = False  # Never contact upstream services; fail on cache misses

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    inaturalist: INaturalistConfig = Field(default_factory=INaturalistConfig)
    globalnames: GlobalNamesConfig = Field(default_factory=GlobalNamesConfig)
    critters: CritterConfig = Field(default_factory=CritterConfig)
