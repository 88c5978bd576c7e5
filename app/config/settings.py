from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class AwsConfig(BaseSettings):
    """AWS credentials shared by the Transcribe, Polly and Bedrock clients."""

    access_key: Optional[str] = None
    secret_key: Optional[SecretStr] = None
    region: str = "us-east-1"

    model_config = SettingsConfigDict(
        env_prefix="AWS_",
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class TranscribeConfig(BaseSettings):
    """Amazon Transcribe streaming configuration."""

    language_code: str = "en-US"
    chunk_size: int = Field(default=8192, ge=1024)

    model_config = SettingsConfigDict(
        env_prefix="TRANSCRIBE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class PollyConfig(BaseSettings):
    """Amazon Polly configuration."""

    region: str = "us-east-1"
    voice_id: str = "Joanna"
    language_code: str = "en-US"
    gender: str = "Female"
    engine: str = "neural"
    output_format: str = "mp3"

    model_config = SettingsConfigDict(
        env_prefix="POLLY_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class BedrockConfig(BaseSettings):
    """Amazon Bedrock configuration."""

    region: str = Field(
        default="us-east-1",
        validation_alias="BEDROCK_REGION",
    )
    model_id: str = Field(
        default="amazon.nova-micro-v1:0",
        validation_alias="BEDROCK_MODEL_ID",
    )
    max_tokens: int = Field(
        default=300,
        validation_alias="BEDROCK_MAX_TOKENS",
        ge=1,
        le=4096,
    )
    temperature: float = Field(
        default=0.7,
        validation_alias="BEDROCK_TEMPERATURE",
        ge=0.0,
        le=1.0,
    )
    top_p: float = Field(
        default=0.9,
        validation_alias="BEDROCK_TOP_P",
        ge=0.0,
        le=1.0,
    )
    api_key: SecretStr | None = Field(
        default=None,
        validation_alias="BEDROCK_API_KEY",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class AudioConfig(BaseSettings):
    """Transcoding policy for inbound browser recordings."""

    ffmpeg_path: str = "ffmpeg"
    input_format: str = "webm"
    sample_rate: int = 48000
    channels: int = 1
    chunk_size: int = Field(default=16384, ge=512)
    queue_size: int = Field(default=8, ge=1)
    timeout_seconds: float = Field(default=30.0, gt=0)
    silence_threshold_dbfs: float = Field(
        default=-70.0,
        description="Clips quieter than this skip the recognizer.",
    )
    temp_dir: str = "temp"

    model_config = SettingsConfigDict(
        env_prefix="AUDIO_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class RateLimitConfig(BaseSettings):
    """Global per-IP and per-session request ceilings."""

    ip_max_requests: int = 100
    ip_window_seconds: float = 15 * 60
    session_max_requests: int = 10
    session_cooldown_seconds: float = 1.0

    model_config = SettingsConfigDict(
        env_prefix="RATE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class SessionConfig(BaseSettings):
    """Idle sweep policy and conversational defaults."""

    sweep_interval_seconds: float = 5 * 60
    idle_threshold_seconds: float = 30 * 60
    assistant_name: str = "Violet"
    system_prompt: str = (
        "You are a friendly and conversational AI assistant. "
        "Keep your responses concise and natural."
    )
    fallback_response: str = (
        "I'm sorry, I'm having trouble processing your request right now."
    )

    model_config = SettingsConfigDict(
        env_prefix="SESSION_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class Settings(BaseSettings):
    """Application settings"""

    app_name: str = "Violet Voice Backend"
    app_version: str = "1.0.0"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 5002
    log_file: str = "logs/app.log"
    pipeline_log_file: str = "logs/voice_pipeline.log"
    transcript_log_file: str = "logs/transcripts.log"

    # AWS
    aws: AwsConfig = Field(default_factory=AwsConfig)

    # Transcribe
    transcribe: TranscribeConfig = Field(default_factory=TranscribeConfig)

    # Polly
    polly: PollyConfig = Field(default_factory=PollyConfig)

    # Bedrock
    bedrock: BedrockConfig = Field(default_factory=BedrockConfig)

    # Audio
    audio: AudioConfig = Field(default_factory=AudioConfig)

    # Rate limits
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)

    # Sessions
    session: SessionConfig = Field(default_factory=SessionConfig)

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["GET", "POST"]
    cors_allow_headers: list[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
