from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # "pycurl" or "httpx"
    engine_backend: str = Field("pycurl", validation_alias="ENGINE_BACKEND")

    default_timeout_seconds: int = Field(30, validation_alias="DEFAULT_TIMEOUT_SECONDS")
    ca_bundle_path: str = Field("", validation_alias="CA_BUNDLE_PATH")
    proxy_url: str = Field("", validation_alias="PROXY_URL")
    user_agent: str = Field("", validation_alias="USER_AGENT")
    follow_redirects: bool = Field(False, validation_alias="FOLLOW_REDIRECTS")
    enable_http2: bool = Field(False, validation_alias="ENABLE_HTTP2")
