from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_prefix": "SE_", "env_file": ".env", "env_file_encoding": "utf-8"}

    mode: str = Field(default="mock", pattern=r"^(mock|real)$")
    llm_provider: str = Field(default="grok", pattern=r"^(openai|anthropic|grok)$")
    llm_model: str = Field(default="grok-3")
    llm_temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    openai_api_key: str = Field(default="")
    anthropic_api_key: str = Field(default="")
    grok_api_key: str = Field(default="")
    grok_base_url: str = Field(default="https://api.x.ai/v1")
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False)
    cors_origins: str = Field(default="http://localhost:3000")

    # Social search
    x_bearer_token: str = Field(default="")
    x_api_base_url: str = Field(default="https://api.twitter.com/2")
    x_request_timeout: float = Field(default=30.0, gt=0)

    # Engine
    classification_post_cap: int = Field(default=30, ge=1)
    narrative_post_cap: int = Field(default=50, ge=1)
    simulation_seed: int | None = Field(default=None)


settings = Settings()
