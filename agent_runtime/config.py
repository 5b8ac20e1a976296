"""
Runtime configuration management using pydantic-settings
"""
from dataclasses import dataclass, field
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables"""

    # Agent runtime
    AGENT_MAX_REASONING_STEPS: int = 50
    AGENT_REASONING_TIMEOUT_SECONDS: float = 300.0
    AGENT_MAX_CONCURRENT: int = 100
    AGENT_IDLE_TIMEOUT_SECONDS: float = 3600.0

    # Memory
    MEMORY_SHORT_TERM_SIZE: int = 100
    MEMORY_LONG_TERM_SIZE: int = 1000
    MEMORY_WORKING_SIZE: int = 20
    MEMORY_COMPRESSION_THRESHOLD: int = 80

    # Tools
    TOOL_PERMISSION_CHECK: bool = True
    TOOL_DEFAULT_TIMEOUT_SECONDS: float = 30.0
    TOOL_MAX_CONCURRENT_CALLS: int = 50
    TOOL_USAGE_STATS: bool = True
    TOOL_LOG_LEVEL: str = "info"

    # LLM Provider
    LLM_PROVIDER: str = "gemini"

    # LLM Provider - Google Gemini
    GOOGLE_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.5-flash"
    GEMINI_EMBEDDING_MODEL: str = "text-embedding-004"

    # LLM Provider - Groq
    GROQ_API_KEY: str = ""
    GROQ_BASE_URL: str = "https://api.groq.com/openai/v1"
    GROQ_MODEL: str = "openai/gpt-oss-120b"
    GROQ_EMBEDDING_MODEL: str = ""

    # Application
    LOG_LEVEL: str = "info"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


@dataclass
class MemoryConfig:
    """Per-agent memory capacities"""
    short_term_memory_size: int = 100
    long_term_memory_size: int = 1000
    working_memory_size: int = 20
    memory_compression_threshold: int = 80

    @classmethod
    def from_settings(cls, settings: Settings) -> "MemoryConfig":
        return cls(
            short_term_memory_size=settings.MEMORY_SHORT_TERM_SIZE,
            long_term_memory_size=settings.MEMORY_LONG_TERM_SIZE,
            working_memory_size=settings.MEMORY_WORKING_SIZE,
            memory_compression_threshold=settings.MEMORY_COMPRESSION_THRESHOLD,
        )


@dataclass
class ToolManagerConfig:
    """Tool invocation policy"""
    enable_permission_check: bool = True
    default_timeout_seconds: float = 30.0
    max_concurrent_calls: int = 50
    enable_usage_stats: bool = True
    log_level: str = "info"

    @classmethod
    def from_settings(cls, settings: Settings) -> "ToolManagerConfig":
        return cls(
            enable_permission_check=settings.TOOL_PERMISSION_CHECK,
            default_timeout_seconds=settings.TOOL_DEFAULT_TIMEOUT_SECONDS,
            max_concurrent_calls=settings.TOOL_MAX_CONCURRENT_CALLS,
            enable_usage_stats=settings.TOOL_USAGE_STATS,
            log_level=settings.TOOL_LOG_LEVEL,
        )


@dataclass
class AgentRuntimeConfig:
    """Limits applied to every agent the runtime hosts"""
    max_reasoning_steps: int = 50
    reasoning_timeout_seconds: float = 300.0
    max_concurrent_agents: int = 100
    idle_timeout_seconds: float = 3600.0
    memory_config: MemoryConfig = field(default_factory=MemoryConfig)
    tool_call_timeout_seconds: Optional[float] = 30.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "AgentRuntimeConfig":
        return cls(
            max_reasoning_steps=settings.AGENT_MAX_REASONING_STEPS,
            reasoning_timeout_seconds=settings.AGENT_REASONING_TIMEOUT_SECONDS,
            max_concurrent_agents=settings.AGENT_MAX_CONCURRENT,
            idle_timeout_seconds=settings.AGENT_IDLE_TIMEOUT_SECONDS,
            memory_config=MemoryConfig.from_settings(settings),
            tool_call_timeout_seconds=settings.TOOL_DEFAULT_TIMEOUT_SECONDS,
        )


# Global settings instance
settings = Settings()
