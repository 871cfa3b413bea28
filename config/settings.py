"""Configuration settings and data models."""

import json
import shutil
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator


class ModelConfig(BaseModel):
    """Configuration for a language model used by the AI collaborators."""

    name: str = Field(..., description="Model name (e.g., 'llama3.2:3b' for Ollama, 'openai/gpt-4o-mini' for OpenRouter)")
    provider: str = Field(default="openrouter", description="Model provider (ollama, openrouter)")
    max_tokens: int = Field(default=800, description="Maximum tokens per response")
    temperature: float = Field(default=0.7, description="Model temperature")

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, v: str) -> str:
        valid_providers = {"ollama", "openrouter"}
        if v not in valid_providers:
            raise ValueError(f"Provider must be one of: {valid_providers}")
        return v


class RoomConfig(BaseModel):
    """Debate room behaviour."""

    format: str = Field(default="asian_parliamentary", description="Debate format for new rooms")
    code_generation_attempts: int = Field(
        default=10, description="How many room codes to try before giving up on collisions"
    )
    duration_grace_seconds: int = Field(
        default=30, description="Seconds a speaker may run over their allotted time"
    )
    late_chunk_seconds: int = Field(
        default=10, description="Seconds after a speech ends during which trailing audio is still transcribed"
    )


class MotionConfig(BaseModel):
    """Motion generation settings."""

    model: ModelConfig = Field(
        default_factory=lambda: ModelConfig(
            name="anthropic/claude-3-haiku", provider="openrouter", max_tokens=600, temperature=0.8
        ),
        description="Model used to generate motions",
    )


class FeedbackConfig(BaseModel):
    """Post-debate feedback settings."""

    enabled: bool = Field(default=True, description="Generate AI feedback when a debate completes")
    model: ModelConfig = Field(
        default_factory=lambda: ModelConfig(
            name="anthropic/claude-3-haiku", provider="openrouter", max_tokens=3000, temperature=0.3
        ),
        description="Model used to write speaker feedback",
    )


class TranscriptionConfig(BaseModel):
    """Whisper-compatible transcription service settings."""

    base_url: Optional[str] = Field(
        default=None, description="Transcription API base URL (can also be set via TRANSCRIPTION_API_URL env var)"
    )
    api_key: Optional[str] = Field(
        default=None, description="Transcription API key (can also be set via TRANSCRIPTION_API_KEY env var)"
    )
    model: str = Field(default="whisper-1", description="Transcription model name")
    timeout: int = Field(default=60, description="API request timeout in seconds")
    min_bytes: int = Field(default=1000, description="Smallest audio payload accepted")
    max_bytes: int = Field(default=16 * 1024 * 1024, description="Largest audio payload accepted")
    chunk_interval_seconds: int = Field(
        default=5, description="How often clients should upload audio chunks"
    )


class OllamaConfig(BaseModel):
    """Ollama-specific configuration."""

    keep_alive: Optional[str] = Field(
        default="5m", description="How long to keep models loaded (e.g., '5m', '1h', '0' for immediate unload)"
    )
    repeat_penalty: Optional[float] = Field(
        default=1.1, description="Penalty for repetition in responses"
    )


class OpenRouterConfig(BaseModel):
    """OpenRouter-specific configuration."""

    api_key: Optional[str] = Field(
        default=None, description="OpenRouter API key (can also be set via OPENROUTER_API_KEY env var)"
    )
    base_url: str = Field(
        default="https://openrouter.ai/api/v1", description="OpenRouter API base URL"
    )
    site_url: Optional[str] = Field(
        default=None, description="Your site URL for OpenRouter referrer tracking"
    )
    app_name: Optional[str] = Field(
        default="Debate Rooms", description="App name for OpenRouter tracking"
    )
    max_retries: int = Field(
        default=3, description="Maximum number of API call retries"
    )
    timeout: int = Field(
        default=60, description="API request timeout in seconds"
    )


class SystemConfig(BaseModel):
    """System-wide configuration."""

    ollama_base_url: str = Field(
        default="http://localhost:11434", description="Ollama API URL"
    )
    ollama: OllamaConfig = Field(
        default_factory=OllamaConfig, description="Ollama-specific settings"
    )
    openrouter: OpenRouterConfig = Field(
        default_factory=OpenRouterConfig, description="OpenRouter-specific settings"
    )
    database_path: str = Field(
        default="debate_rooms.db", description="SQLite database holding rooms and speeches"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")


class AppConfig(BaseModel):
    """Complete application configuration."""

    rooms: RoomConfig = Field(default_factory=RoomConfig)
    motions: MotionConfig = Field(default_factory=MotionConfig)
    feedback: FeedbackConfig = Field(default_factory=FeedbackConfig)
    transcription: TranscriptionConfig = Field(default_factory=TranscriptionConfig)
    system: SystemConfig = Field(default_factory=SystemConfig)

    @classmethod
    def load_from_file(cls, config_path: Path) -> "AppConfig":
        """Load configuration from a JSON or YAML file."""
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, "r", encoding="utf-8") as f:
            if config_path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f) or {}
            else:
                data = json.load(f)

        if not isinstance(data, dict):
            raise ValueError(f"Config file {config_path} must contain a mapping")

        unknown_sections = set(data) - set(cls.model_fields)
        if unknown_sections:
            raise ValueError(f"Unknown config sections: {sorted(unknown_sections)}")

        return cls(**data)

    def save_to_file(self, config_path: Path) -> None:
        """Save configuration as YAML or JSON, chosen by file suffix."""
        config_path.parent.mkdir(parents=True, exist_ok=True)
        data = self.model_dump(mode="json", exclude_unset=True)

        with open(config_path, "w", encoding="utf-8") as f:
            if config_path.suffix in (".yaml", ".yml"):
                yaml.dump(data, f, default_flow_style=False, indent=2)
            else:
                json.dump(data, f, indent=2)


def get_default_config(config_path: Path | None = None) -> AppConfig:
    """Load default configuration from debate_config.json, creating it if needed."""
    config_path = config_path or Path("debate_config.json")
    if not config_path.exists():
        # Auto-create from debate_config.example.json if it exists
        example_path = config_path.with_name("debate_config.example.json")
        if example_path.exists():
            shutil.copy2(example_path, config_path)
        else:
            template_config = get_template_config()
            with open(config_path, "w", encoding="utf-8") as f:
                json.dump(template_config.model_dump(), f, indent=2)
    return AppConfig.load_from_file(config_path)


def get_template_config() -> AppConfig:
    """Get template configuration for config file generation."""
    return AppConfig(
        rooms=RoomConfig(
            format="asian_parliamentary",
            code_generation_attempts=10,
            duration_grace_seconds=30,
            late_chunk_seconds=10,
        ),
        motions=MotionConfig(
            model=ModelConfig(
                name="anthropic/claude-3-haiku",
                provider="openrouter",
                max_tokens=600,
                temperature=0.8,
            )
        ),
        feedback=FeedbackConfig(
            enabled=True,
            model=ModelConfig(
                name="anthropic/claude-3-haiku",
                provider="openrouter",
                max_tokens=3000,
                temperature=0.3,
            ),
        ),
        transcription=TranscriptionConfig(
            base_url=None,  # Set your Whisper-compatible endpoint or use TRANSCRIPTION_API_URL env var
            api_key=None,  # Or use TRANSCRIPTION_API_KEY env var
            model="whisper-1",
        ),
        system=SystemConfig(
            ollama_base_url="http://localhost:11434",
            openrouter=OpenRouterConfig(
                api_key=None,  # Set your OpenRouter API key here or use OPENROUTER_API_KEY env var
                base_url="https://openrouter.ai/api/v1",
                app_name="Debate Rooms",
                max_retries=3,
                timeout=60,
            ),
            database_path="debate_rooms.db",
            log_level="INFO",
        ),
    )
