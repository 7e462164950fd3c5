# src/sow_approvals/config.py
"""
Configuration loader for SOW Approvals.
Loads configuration from YAML files and environment variables.

Precedence (lowest to highest):
    config/default.yaml -> config/{SOW_APPROVALS_ENV}.yaml -> environment variables
"""

from typing import Dict, Any, Literal, Optional
from pathlib import Path
import yaml
import os
from pydantic import BaseModel, Field
import logging

logger = logging.getLogger(__name__)

GATING_SEQUENTIAL = "sequential"
GATING_PARALLEL = "parallel"


class SupabaseConfig(BaseModel):
    """Connection settings for the approval record store."""

    url: str = ""
    key: str = ""
    timeout_seconds: int = 10

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.key)


class SlackConfig(BaseModel):
    """Incoming-webhook settings for approval notifications."""

    enabled: bool = True
    webhook_url: str = ""
    channel: str = ""
    username: str = "SOW Generator"
    icon_emoji: str = ":memo:"
    timeout_seconds: int = 5

    @property
    def is_configured(self) -> bool:
        return self.enabled and bool(self.webhook_url)


class WorkflowPolicy(BaseModel):
    """Approval workflow policy switches."""

    # "sequential": lower sort_order stages must approve first
    # "parallel": every stage may decide at any time
    gating: Literal["sequential", "parallel"] = GATING_SEQUENTIAL
    allow_redecision: bool = False
    require_rejection_comment: bool = True
    lock_timeout_seconds: float = 10.0

    @property
    def is_sequential(self) -> bool:
        return self.gating == GATING_SEQUENTIAL


class AppConfig(BaseModel):
    """Main application configuration."""

    # Environment
    environment: str = "development"
    debug: bool = False

    supabase: SupabaseConfig = Field(default_factory=SupabaseConfig)
    slack: SlackConfig = Field(default_factory=SlackConfig)
    workflow: WorkflowPolicy = Field(default_factory=WorkflowPolicy)

    # Used for "View SOW" links in notifications
    app_url: str = "http://localhost:3000"

    # API
    api_prefix: str = "/api/v1"

    # Logging
    log_level: str = "INFO"

    class Config:
        extra = "allow"


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class ConfigLoader:
    """Load and manage application configuration."""

    def __init__(self, config_dir: str = "config"):
        """
        Initialize config loader.

        Args:
            config_dir: Directory containing config files
        """
        self.config_dir = Path(config_dir)
        self.config: Optional[AppConfig] = None
        self.load()

    def load(self) -> AppConfig:
        """Load configuration from YAML and environment variables."""

        # Determine which config file to load
        env = os.getenv("SOW_APPROVALS_ENV", "development")
        config_file = self.config_dir / f"{env}.yaml"

        # Load default config first
        data = self._load_yaml(self.config_dir / "default.yaml")

        # Override with environment-specific config
        if config_file.exists():
            data = _deep_merge(data, self._load_yaml(config_file))
        else:
            logger.debug(f"Config file not found: {config_file}, using defaults")

        # Override with environment variables
        data = _deep_merge(data, self._load_from_env())
        data.setdefault("environment", env)

        self.config = AppConfig(**data)

        logger.info(
            f"Configuration loaded (environment: {self.config.environment}, "
            f"gating: {self.config.workflow.gating})"
        )

        return self.config

    def _load_yaml(self, path: Path) -> Dict[str, Any]:
        """Load YAML config file."""
        if not path.exists():
            return {}

        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f)
                return data or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load YAML config {path}: {e}")
            return {}

    def _load_from_env(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        config: Dict[str, Any] = {}

        supabase = {}
        if supabase_url := os.getenv("SUPABASE_URL"):
            supabase["url"] = supabase_url
        if supabase_key := os.getenv("SUPABASE_KEY") or os.getenv("SUPABASE_SERVICE_ROLE_KEY"):
            supabase["key"] = supabase_key
        if supabase:
            config["supabase"] = supabase

        slack = {}
        if webhook_url := os.getenv("SLACK_WEBHOOK_URL"):
            slack["webhook_url"] = webhook_url
        if channel := os.getenv("SLACK_CHANNEL"):
            slack["channel"] = channel
        if username := os.getenv("SLACK_USERNAME"):
            slack["username"] = username
        if icon_emoji := os.getenv("SLACK_ICON_EMOJI"):
            slack["icon_emoji"] = icon_emoji
        if slack:
            config["slack"] = slack

        workflow = {}
        if gating := os.getenv("WORKFLOW_GATING"):
            workflow["gating"] = gating.lower()
        if allow_redecision := os.getenv("WORKFLOW_ALLOW_REDECISION"):
            workflow["allow_redecision"] = _as_bool(allow_redecision)
        if workflow:
            config["workflow"] = workflow

        if app_url := os.getenv("APP_URL"):
            config["app_url"] = app_url
        if log_level := os.getenv("LOG_LEVEL"):
            config["log_level"] = log_level.upper()

        return config

    def get(self) -> AppConfig:
        """Get current configuration."""
        if not self.config:
            self.load()
        return self.config

    def reload(self):
        """Reload configuration (useful for development)."""
        logger.info("Reloading configuration...")
        self.load()


def load_config(config_dir: str = "config") -> AppConfig:
    """Load a fresh configuration from the given directory."""
    return ConfigLoader(config_dir).get()
