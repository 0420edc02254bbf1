"""
Centralized configuration for the Teams AI Agent.

All settings are loaded from environment variables via .env file.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()

TEAMS_ORIGINS = (
    "https://teams.microsoft.com,"
    "https://teams.microsoft.us,"
    "https://gov.teams.microsoft.us,"
    "http://localhost:3000,"
    "http://localhost:3001"
)


class Settings(BaseSettings):
    """Application settings."""

    # AWS / Bedrock
    aws_region: str = Field(default="us-east-1", env="AWS_REGION")
    aws_access_key_id: Optional[str] = Field(default=None, env="AWS_ACCESS_KEY_ID")
    aws_secret_access_key: Optional[str] = Field(default=None, env="AWS_SECRET_ACCESS_KEY")
    bedrock_model: str = Field(
        default="anthropic.claude-3-sonnet-20240229-v1:0", env="BEDROCK_MODEL"
    )

    # OpenAI (alternate backend)
    openai_api_key: Optional[str] = Field(default=None, env="OPENAI_API_KEY")
    openai_llm_model: str = Field(default="gpt-4o-mini", env="OPENAI_LLM_MODEL")

    # LLM provider selection
    llm_provider: str = Field(default="bedrock", env="LLM_PROVIDER")  # bedrock | openai
    max_tokens: int = Field(default=4000, env="MAX_TOKENS")
    temperature: float = Field(default=0.7, env="TEMPERATURE")
    model_inactivity_timeout: float = Field(default=60.0, env="MODEL_INACTIVITY_TIMEOUT")

    # MCP Gateway
    mcp_gateway_url: str = Field(default="https://mcp.topcoder.com", env="MCP_GATEWAY_URL")
    mcp_api_key: Optional[str] = Field(default=None, env="MCP_API_KEY")
    environment: str = Field(default="development", env="ENVIRONMENT")
    mcp_discovery_timeout: float = Field(default=10.0, env="MCP_DISCOVERY_TIMEOUT")
    mcp_execute_timeout: float = Field(default=30.0, env="MCP_EXECUTE_TIMEOUT")
    mcp_batch_timeout: float = Field(default=60.0, env="MCP_BATCH_TIMEOUT")
    mcp_test_timeout: float = Field(default=10.0, env="MCP_TEST_TIMEOUT")

    # Chat orchestration
    tool_invocation_timeout: float = Field(default=30.0, env="TOOL_INVOCATION_TIMEOUT")
    history_context_turns: int = Field(default=10, env="HISTORY_CONTEXT_TURNS")
    serialize_user_requests: bool = Field(default=True, env="SERIALIZE_USER_REQUESTS")

    # Azure AD
    azure_tenant_id: Optional[str] = Field(default=None, env="AZURE_TENANT_ID")
    azure_client_id: Optional[str] = Field(default=None, env="AZURE_CLIENT_ID")

    # Shared-secret JWT (development / tests); Azure AD is used when unset
    jwt_secret_key: Optional[str] = Field(default=None, env="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", env="JWT_ALGORITHM")

    # API
    api_title: str = Field(default="Teams AI Agent API", env="API_TITLE")
    api_version: str = Field(default="1.0.0", env="API_VERSION")
    cors_origins: str = Field(default=TEAMS_ORIGINS, env="CORS_ORIGINS")
    rate_limit_requests: int = Field(default=100, env="RATE_LIMIT_REQUESTS")
    rate_limit_window_seconds: int = Field(default=900, env="RATE_LIMIT_WINDOW_SECONDS")

    # Logging
    log_level: str = Field(default="INFO", env="LOG_LEVEL")
    debug: bool = Field(default=False, env="DEBUG")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"

    @property
    def is_openai(self) -> bool:
        return self.llm_provider.lower() == "openai"

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def azure_authority(self) -> str:
        return f"https://login.microsoftonline.com/{self.azure_tenant_id}"


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
