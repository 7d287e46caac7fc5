"""Configuration management using Pydantic Settings"""

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="VENDOR_MEMORY_",
        extra="ignore",
    )

    # Paths
    PACKAGE_ROOT: Path = Path(__file__).parent.parent
    DATA_DIR: Path = PACKAGE_ROOT / "data"
    LEXICON_PATH: Optional[Path] = None
    RULES_PATH: Optional[Path] = None

    # Per-user caps
    MAX_INTERACTIONS: int = 50
    MAX_RECENT_PRODUCTS: int = 20
    CONTEXT_STACK_SIZE: int = 10
    MAX_BEHAVIOR_PATTERNS: int = 20

    # Context relevance decay: exp(-age/DECAY_MINUTES) * exp(-rank*POSITIONAL_DECAY)
    CONTEXT_DECAY_MINUTES: float = 30.0
    CONTEXT_POSITIONAL_DECAY: float = 0.2
    CONTEXT_RELEVANCE_FLOOR: float = 0.1

    # Behaviour pattern mining
    PATTERN_WINDOW: int = 10
    PATTERN_REINFORCEMENT: float = 0.1
    PATTERN_MIN_CONFIDENCE: float = 0.3

    # Retention
    RETENTION_DAYS: int = 7
    USER_IDLE_DAYS: int = 7
    CONVERSATIONAL_CONTEXT_TTL_MINUTES: int = 30

    # Default profile
    DEFAULT_LANGUAGE: str = "pt-BR"
    DEFAULT_PRICE_MAX: float = 10000.0
    DEFAULT_PRICE_FLEXIBILITY: float = 0.3
    CURRENCY_LABEL: str = "guaranis"

    # Logging
    LOG_LEVEL: str = "INFO"

    @property
    def lexicon_file(self) -> Path:
        return self.LEXICON_PATH or self.DATA_DIR / "emotion_lexicon.json"

    @property
    def rules_file(self) -> Path:
        return self.RULES_PATH or self.DATA_DIR / "followup_rules.json"


settings = Settings()
