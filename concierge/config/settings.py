"""Environment-driven configuration.

Every section reads ``.env`` (and ``.secrets/`` where credentials live) with
its own prefix, so ``DB_HOST``, ``BEDROCK_MODEL_ID`` or ``PIPELINE_MAX_SCREENSHOTS``
map onto the matching field below.
"""

from typing import Optional
from urllib.parse import quote_plus

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env(prefix: str = "", *, secrets: bool = False) -> SettingsConfigDict:
    config = SettingsConfigDict(
        env_prefix=prefix,
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )
    if secrets:
        config["secrets_dir"] = ".secrets"
    return config


class DatabaseConfig(BaseSettings):
    model_config = _env("DB_", secrets=True)

    host: str = "localhost"
    port: int = 5432
    username: str = "postgres"
    password: SecretStr = SecretStr("postgres")
    database: str = "concierge"
    schema_name: Optional[str] = Field(default=None, validation_alias="DB_SCHEMA")
    serverless: bool = Field(
        default=True,
        description="Use NullPool so a serverless instance can pause between requests.",
    )

    @property
    def url(self) -> str:
        credentials = f"{quote_plus(self.username)}:{quote_plus(self.password.get_secret_value())}"
        return f"postgresql+asyncpg://{credentials}@{self.host}:{self.port}/{self.database}"


class AwsConfig(BaseSettings):
    """Credentials shared by Bedrock and Transcribe when no dedicated key is set."""

    model_config = _env("AWS_")

    access_key_id: Optional[str] = None
    secret_access_key: Optional[SecretStr] = None
    region: str = "us-east-1"


class BedrockConfig(BaseSettings):
    model_config = _env("BEDROCK_", secrets=True)

    region: str = "us-east-1"
    model_id: str = "us.meta.llama3-3-70b-instruct-v1:0"
    max_tokens: int = Field(default=2048, ge=1, le=8192)
    temperature: float = Field(default=0.2, ge=0.0, le=1.0)
    top_p: float = Field(default=0.9, ge=0.0, le=1.0)
    api_key: Optional[SecretStr] = Field(
        default=None,
        description="base64 encoded 'access_key:secret_key' pair",
    )


class TranscribeConfig(BaseSettings):
    model_config = _env("TRANSCRIBE_")

    region: str = "us-east-1"
    language_code: str = "en-US"
    media_sample_rate_hz: int = Field(default=16000, ge=8000, le=48000)


class FirecrawlConfig(BaseSettings):
    model_config = _env("FIRECRAWL_", secrets=True)

    base_url: str = "https://api.firecrawl.dev"
    api_key: Optional[SecretStr] = None
    max_age_ms: int = Field(default=14_400_000, description="Reuse cached captures up to 4 hours old.")
    timeout_seconds: float = Field(default=60.0, gt=0)


class ResearchAgentConfig(BaseSettings):
    model_config = _env("RESEARCH_AGENT_", secrets=True)

    base_url: str = "http://localhost:8100"
    api_key: Optional[SecretStr] = None
    timeout_seconds: float = Field(default=300.0, gt=0)


class PipelineConfig(BaseSettings):
    """Timing and limits for the detached conversation pipeline."""

    model_config = _env("PIPELINE_")

    new_conversation_delay_seconds: float = Field(
        default=3.0,
        ge=0.0,
        description="Give the client time to join the conversation room first.",
    )
    follow_up_delay_seconds: float = Field(default=1.0, ge=0.0)
    max_screenshots: int = Field(default=2, ge=0)


class SecurityConfig(BaseSettings):
    model_config = _env("JWT_", secrets=True)

    secret: SecretStr = SecretStr("change-me")
    algorithm: str = "HS256"


class Settings(BaseSettings):
    model_config = _env()

    app_name: str = "Concierge Backend"
    app_version: str = "1.0.0"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000

    log_file: str = "logs/app.log"
    pipeline_log_file: str = "logs/conversation_pipeline.log"
    transcript_log_file: str = "logs/transcripts.log"

    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    aws: AwsConfig = Field(default_factory=AwsConfig)
    bedrock: BedrockConfig = Field(default_factory=BedrockConfig)
    transcribe: TranscribeConfig = Field(default_factory=TranscribeConfig)
    firecrawl: FirecrawlConfig = Field(default_factory=FirecrawlConfig)
    research_agent: ResearchAgentConfig = Field(default_factory=ResearchAgentConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)


settings = Settings()
