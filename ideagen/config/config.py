"""
Configuration module for Idea Generator.

Loads environment variables from .env file and exposes them as typed configuration values.
Uses python-dotenv for loading and provides safe defaults where appropriate.

Values are read once at import time and treated as process-wide constants.
Entry points call ensure_valid_config() at startup so that a broken
environment fails loudly before any workflow runs.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

from ideagen.errors import ConfigurationError

# Load .env file from project root
# The .env file should be in the root directory (parent of ideagen/)
_project_root = Path(__file__).parent.parent.parent
_env_path = _project_root / ".env"
load_dotenv(_env_path)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("true", "1", "yes")


# =============================================================================
# Application Environment
# =============================================================================

# Application environment: "development", "staging", or "production"
APP_ENV: str = os.getenv("APP_ENV", "development")

# Enable debug mode for verbose logging (only in development)
DEBUG: bool = _env_bool("DEBUG", "false")

# Mock mode swaps the Reddit source, the LLM and the mailer for local fakes.
# Default: true, so a fresh checkout never talks to paid APIs.
MOCK_MODE: bool = _env_bool("MOCK_MODE", "true")


# =============================================================================
# Source Cache Gateway
# =============================================================================

# Topic used by scheduled runs and by triggers that carry no topic
DEFAULT_TOPIC: str = os.getenv("DEFAULT_TOPIC", "entrepreneur").strip().lower()

# Freshness window for cached source items
CACHE_TTL_HOURS: int = int(os.getenv("CACHE_TTL_HOURS", "12"))

# Maximum number of stored items returned by the stale fallback
STALE_FALLBACK_LIMIT: int = int(os.getenv("STALE_FALLBACK_LIMIT", "50"))

# HTTP request timeout in seconds
REQUEST_TIMEOUT: int = int(os.getenv("REQUEST_TIMEOUT", "30"))

# Reddit rejects anonymous clients without an identifying User-Agent
REDDIT_USER_AGENT: str = os.getenv("REDDIT_USER_AGENT", "RedditIdeaGenerator/1.0")

# Number of posts requested per listing call
REDDIT_LISTING_LIMIT: int = int(os.getenv("REDDIT_LISTING_LIMIT", "25"))

# Local fixture used by the mock source
MOCK_DATA_PATH: str = os.getenv(
    "MOCK_DATA_PATH", str(_project_root / "data" / "mock-reddit.json")
)


# =============================================================================
# Airtable Configuration
# =============================================================================

AIRTABLE_API_KEY: str = os.getenv("AIRTABLE_API_KEY", "")
AIRTABLE_BASE_ID: str = os.getenv("AIRTABLE_BASE_ID", "")

AIRTABLE_TOPICS_TABLE: str = os.getenv("AIRTABLE_TOPICS_TABLE", "Topics")
AIRTABLE_POSTS_TABLE: str = os.getenv("AIRTABLE_POSTS_TABLE", "RawPosts")
AIRTABLE_IDEAS_TABLE: str = os.getenv("AIRTABLE_IDEAS_TABLE", "Ideas")
AIRTABLE_SUBSCRIBERS_TABLE: str = os.getenv("AIRTABLE_SUBSCRIBERS_TABLE", "Subscribers")


# =============================================================================
# LLM Configuration (OpenAI-compatible chat completions, Groq by default)
# =============================================================================

GROQ_API_KEY: str = os.getenv("GROQ_API_KEY", "")
GROQ_MODEL: str = os.getenv("GROQ_MODEL", "llama-3.1-8b-instant")
LLM_API_URL: str = os.getenv("LLM_API_URL", "https://api.groq.com/openai/v1/chat/completions")


# =============================================================================
# Email Configuration (Resend)
# =============================================================================

RESEND_API_KEY: str = os.getenv("RESEND_API_KEY", "")
RESEND_FROM_EMAIL: str = os.getenv(
    "RESEND_FROM_EMAIL", "Reddit Idea Generator <onboarding@resend.dev>"
)

# Look-back window for the standalone email digest job
EMAIL_DIGEST_INTERVAL_HOURS: int = int(os.getenv("EMAIL_DIGEST_INTERVAL_HOURS", "24"))

# Bearer token required by the cron endpoint when set
CRON_SECRET: str = os.getenv("CRON_SECRET", "")


# =============================================================================
# Workflow Execution
# =============================================================================

# Scheduled runs fire every N hours for DEFAULT_TOPIC
SCHEDULE_INTERVAL_HOURS: int = int(os.getenv("SCHEDULE_INTERVAL_HOURS", "6"))

# Attempts per named step before the run fails
STEP_MAX_ATTEMPTS: int = int(os.getenv("STEP_MAX_ATTEMPTS", "3"))

# Base wait between step attempts (exponential backoff)
STEP_RETRY_WAIT_SECONDS: float = float(os.getenv("STEP_RETRY_WAIT_SECONDS", "1.0"))

# Directory for step checkpoints; empty keeps checkpoints in memory
CHECKPOINT_DIR: str = os.getenv("CHECKPOINT_DIR", "")


# =============================================================================
# Sync Status Observer
# =============================================================================

SYNC_POLL_INTERVAL: float = float(os.getenv("SYNC_POLL_INTERVAL", "3"))
IDLE_POLL_INTERVAL: float = float(os.getenv("IDLE_POLL_INTERVAL", "60"))
SYNC_TIMEOUT: float = float(os.getenv("SYNC_TIMEOUT", "180"))


# =============================================================================
# Helper Functions
# =============================================================================

def is_production() -> bool:
    """Check if running in production environment."""
    return APP_ENV == "production"


def is_development() -> bool:
    """Check if running in development environment."""
    return APP_ENV == "development"


def validate_config() -> list[str]:
    """
    Validate that required configuration is present and sane.

    Returns:
        List of missing or invalid configuration keys (empty if all valid).
    """
    errors = []

    if is_production():
        if not AIRTABLE_API_KEY:
            errors.append("AIRTABLE_API_KEY is required in production")
        if not AIRTABLE_BASE_ID:
            errors.append("AIRTABLE_BASE_ID is required in production")
        if MOCK_MODE:
            errors.append("MOCK_MODE must be disabled in production")

    if not MOCK_MODE and not GROQ_API_KEY:
        errors.append("GROQ_API_KEY is required when MOCK_MODE is disabled")

    if AIRTABLE_API_KEY and not AIRTABLE_BASE_ID:
        errors.append("AIRTABLE_BASE_ID is required when AIRTABLE_API_KEY is set")

    if not DEFAULT_TOPIC:
        errors.append("DEFAULT_TOPIC cannot be empty")

    if not REDDIT_USER_AGENT.strip():
        errors.append("REDDIT_USER_AGENT cannot be empty")

    if CACHE_TTL_HOURS < 1:
        errors.append("CACHE_TTL_HOURS must be at least 1 hour")

    if STALE_FALLBACK_LIMIT < 1:
        errors.append("STALE_FALLBACK_LIMIT must be at least 1")

    if REQUEST_TIMEOUT < 1:
        errors.append("REQUEST_TIMEOUT must be at least 1 second")

    if STEP_MAX_ATTEMPTS < 1:
        errors.append("STEP_MAX_ATTEMPTS must be at least 1")

    if STEP_RETRY_WAIT_SECONDS < 0:
        errors.append("STEP_RETRY_WAIT_SECONDS cannot be negative")

    if SCHEDULE_INTERVAL_HOURS < 1:
        errors.append("SCHEDULE_INTERVAL_HOURS must be at least 1 hour")

    if SYNC_POLL_INTERVAL <= 0 or IDLE_POLL_INTERVAL <= 0:
        errors.append("SYNC_POLL_INTERVAL and IDLE_POLL_INTERVAL must be positive")

    if SYNC_TIMEOUT <= SYNC_POLL_INTERVAL:
        errors.append("SYNC_TIMEOUT must be longer than SYNC_POLL_INTERVAL")

    return errors


def ensure_valid_config() -> None:
    """
    Fail fast on an invalid environment.

    Raises:
        ConfigurationError: Listing every problem found by validate_config().
    """
    errors = validate_config()
    if errors:
        raise ConfigurationError(errors)


def print_config_summary() -> None:
    """Print a summary of current configuration (safe for logs, no secrets)."""
    print(f"  APP_ENV: {APP_ENV}")
    print(f"  DEBUG: {DEBUG}")
    print(f"  MOCK_MODE: {MOCK_MODE}")
    print(f"  DEFAULT_TOPIC: {DEFAULT_TOPIC}")
    print(f"  CACHE_TTL_HOURS: {CACHE_TTL_HOURS}h")
    print(f"  REDDIT_USER_AGENT: {REDDIT_USER_AGENT}")
    print(f"  AIRTABLE_API_KEY: {'***' if AIRTABLE_API_KEY else '(not set)'}")
    print(f"  AIRTABLE_BASE_ID: {'***' if AIRTABLE_BASE_ID else '(not set)'}")
    print(f"  GROQ_API_KEY: {'***' if GROQ_API_KEY else '(not set)'}")
    print(f"  GROQ_MODEL: {GROQ_MODEL}")
    print(f"  RESEND_API_KEY: {'***' if RESEND_API_KEY else '(not set)'}")
    print(f"  SCHEDULE_INTERVAL_HOURS: {SCHEDULE_INTERVAL_HOURS}h")
    print(f"  STEP_MAX_ATTEMPTS: {STEP_MAX_ATTEMPTS}")
    print(f"  CHECKPOINT_DIR: {CHECKPOINT_DIR or '(in memory)'}")
    print(f"  REQUEST_TIMEOUT: {REQUEST_TIMEOUT}s")
