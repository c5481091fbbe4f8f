"""Configuration settings for the sealed-pack tracking service."""

import os


def get_postgres_uri():
    """Get PostgreSQL connection URI from environment variables."""
    database_url = os.environ.get("DATABASE_URL")
    if database_url:
        return database_url
    host = os.environ.get("DB_HOST", "localhost")
    port = os.environ.get("DB_PORT", 5433 if host == "localhost" else 5432)
    password = os.environ.get("DB_PASSWORD", "tracking_pass")
    user = os.environ.get("DB_USER", "tracking_user")
    db_name = os.environ.get("DB_NAME", "tracking_db")
    return f"postgresql://{user}:{password}@{host}:{port}/{db_name}"


def get_redis_host_and_port():
    """Get Redis connection details from environment variables."""
    host = os.environ.get("REDIS_HOST", "localhost")
    port = int(os.environ.get("REDIS_PORT", 6379))
    return dict(host=host, port=port)


def get_api_url():
    """Get API URL from environment variables."""
    host = os.environ.get("API_HOST", "localhost")
    port = os.environ.get("API_PORT", 8000)
    return f"http://{host}:{port}"


def _env_flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).lower() in ("1", "true", "yes")


def get_tracking_policy():
    """
    Get delivery tracking policy switches from environment variables.

    - enforce_assignee: reject events not submitted by the assigned agent
    - strict_ordering: require PICKUP before TRANSIT and FINAL
    - status_channel: Redis channel for SUSPICIOUS / COMPLETED notifications
    """
    return dict(
        enforce_assignee=_env_flag("TRACKING_ENFORCE_ASSIGNEE"),
        strict_ordering=_env_flag("TRACKING_STRICT_ORDERING"),
        status_channel=os.environ.get("TRACKING_STATUS_CHANNEL", "tracking:task-status"),
    )
