from functools import lru_cache

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    APP_NAME: str = "KotobaID Backend"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    FRONTEND_URL: str = "http://localhost:5173"
    HOST: str = "0.0.0.0"
    PORT: int = 3001

    # Vertex AI
    GOOGLE_CLOUD_PROJECT_ID: str = "kotoba-id"
    GOOGLE_CLOUD_LOCATION: str = "us-central1"
    VERTEX_AI_MODEL: str = "gemini-pro"
    VERTEX_AI_MAX_TOKENS: int = 1000
    VERTEX_AI_TEMPERATURE: float = 0.7
    GOOGLE_APPLICATION_CREDENTIALS: str | None = None
    VERTEX_AI_TIMEOUT_SECONDS: float = 60.0
    VERTEX_AI_CONNECT_ON_STARTUP: bool = True

    # Rate limiting
    RATE_LIMIT_WINDOW_MS: int = 15 * 60 * 1000
    RATE_LIMIT_MAX_REQUESTS: int = 100

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "console"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"


@lru_cache()
def get_settings() -> Settings:
    return Settings()


class GenerationParams(BaseModel):
    """Generation parameters sent with every model call."""

    model_config = ConfigDict(frozen=True)

    max_output_tokens: int = Field(..., gt=0, description="Maximum tokens in the response")
    temperature: float = Field(..., ge=0.0, le=2.0, description="Sampling temperature")


class GatewayConfigView(BaseModel):
    """Read-only projection of GatewayConfig exposed by status reporting.

    The credentials path is deliberately absent.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    project_id: str
    location: str
    model: str
    max_tokens: int
    temperature: float


class GatewayConfig(BaseModel):
    """Immutable snapshot of the Vertex AI connection parameters.

    Attributes:
        project_id: Google Cloud project hosting the model.
        location: Vertex AI region.
        model_name: Publisher model to call (e.g. "gemini-pro").
        max_output_tokens: Generation token cap.
        temperature: Generation temperature.
        credentials_path: Service account key file. Checked at first
            connection attempt, not here.
    """

    model_config = ConfigDict(frozen=True)

    project_id: str
    location: str
    model_name: str
    max_output_tokens: int = Field(gt=0)
    temperature: float = Field(ge=0.0, le=2.0)
    credentials_path: str | None = None

    def generation_params(self) -> GenerationParams:
        return GenerationParams(
            max_output_tokens=self.max_output_tokens,
            temperature=self.temperature,
        )

    def view(self) -> GatewayConfigView:
        return GatewayConfigView(
            project_id=self.project_id,
            location=self.location,
            model=self.model_name,
            max_tokens=self.max_output_tokens,
            temperature=self.temperature,
        )


def load_gateway_config(settings: Settings | None = None) -> GatewayConfig:
    """Resolve the connection parameters from settings.

    A missing credentials path is not an error here; the connection
    manager reports it on the first ensure_ready() call.
    """
    settings = settings or get_settings()
    return GatewayConfig(
        project_id=settings.GOOGLE_CLOUD_PROJECT_ID,
        location=settings.GOOGLE_CLOUD_LOCATION,
        model_name=settings.VERTEX_AI_MODEL,
        max_output_tokens=settings.VERTEX_AI_MAX_TOKENS,
        temperature=settings.VERTEX_AI_TEMPERATURE,
        credentials_path=settings.GOOGLE_APPLICATION_CREDENTIALS or None,
    )
