from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: str = Field(default="INFO")

    redis_url: str = Field(default="redis://localhost:6379/0")
    history_limit: int = Field(default=100)
    # stopped sessions whose reports stay readable in memory
    retained_finished_sessions: int = Field(default=50)

    remote_classifier_backend: Literal["ark", "agentscope", "disabled"] = Field(default="ark")
    ark_base_url: str = Field(default="https://ark.cn-beijing.volces.com/api/v3")
    ark_api_key: str | None = Field(default=None)
    ark_model: str = Field(default="doubao-seed-1-8-251228")
    openai_api_key: str | None = Field(default=None)
    openai_model: str = Field(default="gpt-4o-mini")

    remote_timeout_s: float = Field(default=8.0)
    remote_max_attempts: int = Field(default=3)
    remote_backoff_base_s: float = Field(default=1.0)
    # 0 sends one request per candidate segment
    remote_batch_interval_s: float = Field(default=0.0)
    reconciliation_window: int = Field(default=3)

    min_segment_tokens: int = Field(default=4)
    analysis_interval_s: float = Field(default=5.0)
    simulation_interval_s: float = Field(default=3.0)
    interim_debounce_s: float = Field(default=0.3)
    off_topic_sample_limit: int = Field(default=5)

    on_topic_blend: Literal["favorable", "symmetric"] = Field(default="favorable")
    blend_high_weight: float = Field(default=0.6)
    grade_topic_weight: float = Field(default=0.40)
    grade_metrics_weight: float = Field(default=0.30)
    engagement_bonus_cap: float = Field(default=20.0)
    question_points: float = Field(default=3.0)
    example_points: float = Field(default=4.0)
    duration_bonus_cap: float = Field(default=10.0)
    duration_points_per_minute: float = Field(default=0.5)
    normalize_short_sessions: bool = Field(default=True)


settings = Settings()
