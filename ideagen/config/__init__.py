"""
Configuration module.

Handles environment variables, API keys, and application settings.
"""

from ideagen.config.config import (
    APP_ENV,
    DEBUG,
    MOCK_MODE,
    DEFAULT_TOPIC,
    CACHE_TTL_HOURS,
    STALE_FALLBACK_LIMIT,
    REQUEST_TIMEOUT,
    REDDIT_USER_AGENT,
    REDDIT_LISTING_LIMIT,
    MOCK_DATA_PATH,
    AIRTABLE_API_KEY,
    AIRTABLE_BASE_ID,
    AIRTABLE_TOPICS_TABLE,
    AIRTABLE_POSTS_TABLE,
    AIRTABLE_IDEAS_TABLE,
    AIRTABLE_SUBSCRIBERS_TABLE,
    GROQ_API_KEY,
    GROQ_MODEL,
    LLM_API_URL,
    RESEND_API_KEY,
    RESEND_FROM_EMAIL,
    EMAIL_DIGEST_INTERVAL_HOURS,
    CRON_SECRET,
    SCHEDULE_INTERVAL_HOURS,
    STEP_MAX_ATTEMPTS,
    STEP_RETRY_WAIT_SECONDS,
    CHECKPOINT_DIR,
    SYNC_POLL_INTERVAL,
    IDLE_POLL_INTERVAL,
    SYNC_TIMEOUT,
    is_production,
    is_development,
    validate_config,
    ensure_valid_config,
    print_config_summary,
)

__all__ = [
    "APP_ENV",
    "DEBUG",
    "MOCK_MODE",
    "DEFAULT_TOPIC",
    "CACHE_TTL_HOURS",
    "STALE_FALLBACK_LIMIT",
    "REQUEST_TIMEOUT",
    "REDDIT_USER_AGENT",
    "REDDIT_LISTING_LIMIT",
    "MOCK_DATA_PATH",
    "AIRTABLE_API_KEY",
    "AIRTABLE_BASE_ID",
    "AIRTABLE_TOPICS_TABLE",
    "AIRTABLE_POSTS_TABLE",
    "AIRTABLE_IDEAS_TABLE",
    "AIRTABLE_SUBSCRIBERS_TABLE",
    "GROQ_API_KEY",
    "GROQ_MODEL",
    "LLM_API_URL",
    "RESEND_API_KEY",
    "RESEND_FROM_EMAIL",
    "EMAIL_DIGEST_INTERVAL_HOURS",
    "CRON_SECRET",
    "SCHEDULE_INTERVAL_HOURS",
    "STEP_MAX_ATTEMPTS",
    "STEP_RETRY_WAIT_SECONDS",
    "CHECKPOINT_DIR",
    "SYNC_POLL_INTERVAL",
    "IDLE_POLL_INTERVAL",
    "SYNC_TIMEOUT",
    "is_production",
    "is_development",
    "validate_config",
    "ensure_valid_config",
    "print_config_summary",
]
