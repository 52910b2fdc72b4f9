"""Project configuration and paths.

Loads settings from config/settings.yaml and environment variables.
"""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

# === Paths ===
PROJECT_ROOT = Path(__file__).parent.parent.parent
CONFIG_DIR = PROJECT_ROOT / "config"
DATA_DIR = PROJECT_ROOT / "data"
DATA_POSTS_DIR = DATA_DIR / "posts"
DATA_SETTINGS_DIR = DATA_DIR / "settings"

# Load .env from project root
load_dotenv(PROJECT_ROOT / ".env")


class HttpSettings(BaseModel):
    """Outbound HTTP client settings."""
    timeout_seconds: float = 15.0


class LLMSettings(BaseModel):
    """LLM API settings."""
    openai_model: str = "gpt-4o"
    max_tokens: int = 4000
    temperature: float = 0.7


class SiteSettings(BaseModel):
    """Public site URLs used in generated content."""
    site_url: str = "https://obsession-trigger.com"
    quiz_path: str = "/quiz"
    lead_magnet_path: str = "/lead-magnet"
    blog_path: str = "/blog"
    unsubscribe_path: str = "/unsubscribe"
    blog_title: str = "Obsession Trigger Blog"
    blog_author: str = "Relationship Expert"
    affiliate_url: str = ""


class EmailSettings(BaseModel):
    """Default sender identity for outbound email."""
    default_from_email: str = "info@obsessiontrigger.com"
    default_from_name: str = "Obsession Trigger Team"


class ImageSettings(BaseModel):
    """Stock photo search settings."""
    images_per_post: int = 2
    orientation: str = "landscape"
    fallback_query: str = "relationship couple"


class SchedulerSettings(BaseModel):
    """Defaults for the scheduled generation job."""
    enabled: bool = False
    frequency: str = "daily"
    time_of_day: str = "08:00"
    timezone: str = "America/New_York"


class StorageSettings(BaseModel):
    """Local JSON storage locations."""
    settings_path: str = str(DATA_SETTINGS_DIR / "settings.json")
    posts_path: str = str(DATA_POSTS_DIR / "posts.json")
    subscribers_path: str = str(DATA_DIR / "subscribers.json")


class Settings(BaseModel):
    """Top-level application settings."""
    http: HttpSettings = Field(default_factory=HttpSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    site: SiteSettings = Field(default_factory=SiteSettings)
    email: EmailSettings = Field(default_factory=EmailSettings)
    images: ImageSettings = Field(default_factory=ImageSettings)
    scheduler: SchedulerSettings = Field(default_factory=SchedulerSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)

    @classmethod
    def load(cls) -> Settings:
        """Load settings from config/settings.yaml, falling back to defaults."""
        settings_path = CONFIG_DIR / "settings.yaml"
        if settings_path.exists():
            with open(settings_path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            return cls(**data)
        return cls()


def get_openai_api_key() -> str:
    """Get OpenAI API key from environment."""
    key = os.getenv("OPENAI_API_KEY", "")
    if not key:
        raise ValueError("OPENAI_API_KEY not set in environment")
    return key


def get_pexels_api_key() -> str:
    """Get Pexels API key from environment."""
    key = os.getenv("PEXELS_API_KEY", "")
    if not key:
        raise ValueError("PEXELS_API_KEY not set in environment")
    return key


def get_admin_usernames() -> list[str]:
    """Get the admin usernames allowed to hold an admin token."""
    raw = os.getenv("ADMIN_USERNAME", "admin")
    return [name.strip() for name in raw.split(",") if name.strip()]


# Singleton settings instance
settings = Settings.load()
