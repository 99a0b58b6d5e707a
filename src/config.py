"""Configuration settings for the book catalog and notification services."""

import os


def get_postgres_uri():
    """Get PostgreSQL connection URI from environment variables."""
    host = os.environ.get("DB_HOST", "localhost")
    port = 5433 if host == "localhost" else 5432
    password = os.environ.get("DB_PASSWORD", "catalog_pass")
    user = os.environ.get("DB_USER", "catalog_user")
    db_name = os.environ.get("DB_NAME", "catalog_db")
    return f"postgresql://{user}:{password}@{host}:{port}/{db_name}"


def get_database_uri():
    """Get the database URI, allowing a full override through DATABASE_URL."""
    return os.environ.get("DATABASE_URL") or get_postgres_uri()


def get_redis_host_and_port():
    """Get Redis connection details from environment variables."""
    host = os.environ.get("REDIS_HOST", "localhost")
    port = int(os.environ.get("REDIS_PORT", "6379"))
    return dict(host=host, port=port)


def get_redis_url():
    """Get Redis URL from environment variables."""
    redis_config = get_redis_host_and_port()
    return f"redis://{redis_config['host']}:{redis_config['port']}"


def get_api_url():
    """Get catalog API URL from environment variables."""
    host = os.environ.get("API_HOST", "localhost")
    port = int(os.environ.get("API_PORT", "8000"))
    return f"http://{host}:{port}"


def get_google_books_config():
    """Get Google Books API configuration from environment variables."""
    return dict(
        base_url=os.environ.get("GOOGLE_BOOKS_BASE_URL", "https://www.googleapis.com/books/v1"),
        api_key=os.environ.get("GOOGLE_BOOKS_API_KEY", ""),
        max_results=int(os.environ.get("GOOGLE_BOOKS_MAX_RESULTS", "10")),
        timeout=int(os.environ.get("GOOGLE_BOOKS_TIMEOUT", "30")),
        cache_ttl_seconds=int(os.environ.get("EXTERNAL_BOOKS_CACHE_TTL", "3600")),
    )


def get_messaging_config():
    """Get event publishing and consumption settings."""
    return dict(
        max_attempts=int(os.environ.get("PUBLISH_MAX_ATTEMPTS", "3")),
        base_delay_seconds=float(os.environ.get("PUBLISH_BASE_DELAY", "1.0")),
        max_stream_length=int(os.environ.get("STREAM_MAX_LENGTH", "10000")),
        consumer_group=os.environ.get("CONSUMER_GROUP", "notification-service"),
        consumer_name=os.environ.get("CONSUMER_NAME", "notification-worker-1"),
        block_ms=int(os.environ.get("CONSUMER_BLOCK_MS", "5000")),
        on_bad_message=os.environ.get("CONSUMER_ON_BAD_MESSAGE", "dead-letter"),
        max_deliveries=int(os.environ.get("CONSUMER_MAX_DELIVERIES", "5")),
    )


def get_notification_config():
    """Get default notification recipient."""
    return dict(
        recipient_email=os.environ.get("NOTIFICATION_RECIPIENT_EMAIL", "admin@bookmanagement.com"),
        recipient_name=os.environ.get("NOTIFICATION_RECIPIENT_NAME", "Admin"),
    )


def get_users_config():
    """Get configured HTTP Basic users as {username: (password, role)}."""
    return {
        os.environ.get("ADMIN_USERNAME", "admin"): (os.environ.get("ADMIN_PASSWORD", "admin123"), "ADMIN"),
        os.environ.get("USER_USERNAME", "user"): (os.environ.get("USER_PASSWORD", "user123"), "USER"),
    }
