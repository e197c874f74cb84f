"""Mail processor configuration loaded from environment variables."""

from __future__ import annotations

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings


class ImapConfig(BaseSettings):
    """IMAP session settings, immutable for the lifetime of a run."""

    model_config = {"env_prefix": "IMAP_", "frozen": True}

    host: str = Field(description="IMAP server hostname")
    port: int = Field(default=993, description="IMAP server port")
    use_ssl: bool = Field(default=True, description="Use SSL/TLS connection")
    username: str = Field(description="IMAP login username")
    password: SecretStr = Field(description="IMAP login password")
    scan_folder: str = Field(default="INBOX", description="Folder scanned for unseen messages")
    move_to_folder: str | None = Field(
        default=None,
        description="Folder that processed messages are copied to",
    )
    move_invalid_to_folder: str | None = Field(
        default=None,
        description="Folder that discarded messages are copied to",
    )

    @property
    def folders(self) -> list[str]:
        """Every configured folder name, skipping blank ones."""
        candidates = (self.scan_folder, self.move_to_folder, self.move_invalid_to_folder)
        return [folder for folder in candidates if folder]


class RetryConfig(BaseSettings):
    """Retry / backoff settings for IMAP logins, driven by Tenacity."""

    model_config = {"env_prefix": "RETRY_"}

    max_attempts: int = Field(default=3, description="Maximum connection attempts per run")
    initial_wait_seconds: float = Field(
        default=1.0,
        description="Initial backoff wait in seconds",
    )
    max_wait_seconds: float = Field(
        default=30.0,
        description="Maximum backoff wait in seconds",
    )
    multiplier: float = Field(default=2.0, description="Exponential backoff multiplier")


class ProcessorConfig(BaseSettings):
    """Root configuration for a mail processor process.

    Nested configs are populated from their own env-var prefixes.
    """

    model_config = {"env_prefix": "MAIL_PROCESSOR_"}

    keyword: str = Field(
        default="lead",
        description="Handler keyword this processor dispatches to",
    )
    handlers: dict[str, str] = Field(
        default_factory=dict,
        description='Keyword to handler class mapping, e.g. {"lead": "myapp.mail:LeadHandler"}',
    )
    database_url: str = Field(description="SQLAlchemy URL of the CRM database")
    quiet: bool = Field(default=False, description="Suppress all processor log output")
    log_json: bool = Field(
        default=True,
        description="Use JSON log output (True for prod, False for dev)",
    )
    log_level: str = Field(default="INFO", description="Log level")
    poll_interval_seconds: float = Field(
        default=60.0,
        description="Seconds between runs in watch mode",
    )

    imap: ImapConfig = Field(default_factory=ImapConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
