"""Engine configuration using pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables (EXTRACELL_*)."""

    model_config = SettingsConfigDict(
        env_prefix="EXTRACELL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Dependency tracing
    default_trace_depth: int = 2
    max_trace_depth: int = 5
    max_fallback_refs: int = 10  # Per cell, when parsing formula text

    # Search
    default_max_results: int = 20
    value_preview_chars: int = 60

    # Logging
    log_level: str = "INFO"
    json_logs: bool = False

    def resolve_depth(self, depth: int | None) -> int:
        """Apply the default and the hard cap to a requested trace depth."""
        return min(depth or self.default_trace_depth, self.max_trace_depth)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
