"""
Warm Intro Graph Configuration Settings
"""
from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

from config.relationship_weights import (
    HALF_LIFE_DAYS,
    DEFAULT_STRENGTH_POLICY,
    REINFORCEMENT_FACTOR,
    DEFAULT_MAX_HOPS,
    DEFAULT_MAX_PATHS,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Storage (use WIG_ prefix)
    db_path: Path = Field(
        default=Path("./data/warm_intro.db"),
        alias="WIG_DB_PATH",
        description="SQLite database holding people, evidence and edge snapshots"
    )

    # Server
    port: int = Field(default=8000, alias="WIG_PORT")
    host: str = Field(default="0.0.0.0", alias="WIG_HOST")

    # ==========================================================================
    # STRENGTH SCORING
    # ==========================================================================
    # Recency decays as exp(-days / half_life_days). The default gives ~0.37
    # at 180 days and ~0.13 at one year.
    # ==========================================================================

    half_life_days: float = Field(
        default=HALF_LIFE_DAYS,
        alias="WIG_HALF_LIFE_DAYS",
        gt=0,
        description="E-fold decay period for evidence recency"
    )
    strength_policy: str = Field(
        default=DEFAULT_STRENGTH_POLICY,
        alias="WIG_STRENGTH_POLICY",
        description="How event recencies combine: reinforced_max, max, capped_sum"
    )
    reinforcement_factor: float = Field(
        default=REINFORCEMENT_FACTOR,
        alias="WIG_REINFORCEMENT_FACTOR",
        ge=0,
        le=1,
        description="Share of each supporting event that reinforces the most recent one"
    )
    edge_direction: str = Field(
        default="bidirectional",
        alias="WIG_EDGE_DIRECTION",
        description="bidirectional pools evidence per pair; directional keeps subject->object only"
    )

    # Path search
    default_max_hops: int = Field(default=DEFAULT_MAX_HOPS, alias="WIG_MAX_HOPS", ge=1)
    default_max_paths: int = Field(default=DEFAULT_MAX_PATHS, alias="WIG_MAX_PATHS", ge=1)
    min_edge_strength: float = Field(
        default=0.0,
        alias="WIG_MIN_EDGE_STRENGTH",
        ge=0,
        le=1,
        description="Edges at or below this strength are never traversed"
    )

    # Deduplication sweeps
    dedup_batch_size: int = Field(default=100, alias="WIG_DEDUP_BATCH_SIZE", ge=1)
    dedup_sample_groups: int = Field(default=50, alias="WIG_DEDUP_SAMPLE_GROUPS", ge=0)
    dedup_sample_ids: int = Field(default=3, alias="WIG_DEDUP_SAMPLE_IDS", ge=0)


settings = Settings()
