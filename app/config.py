from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    database_url: str = Field(default="sqlite:///./products.db", alias="DATABASE_URL")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=True, alias="LOG_JSON")

    monitoring_backend: Literal["memory", "newrelic"] = Field(default="memory", alias="MONITORING_BACKEND")
    new_relic_config_file: str | None = Field(default=None, alias="NEW_RELIC_CONFIG_FILE")
    new_relic_license_key: str = Field(default="", alias="NEW_RELIC_LICENSE_KEY")
    new_relic_app_name: str = Field(default="ProductApi", alias="NEW_RELIC_APP_NAME")
    new_relic_register_timeout: float = Field(default=10.0, alias="NEW_RELIC_REGISTER_TIMEOUT")
    new_relic_metric_prefix: str = Field(default="Custom/", alias="NEW_RELIC_METRIC_PREFIX")

    metrics_resource_param: str = Field(default="id", alias="METRICS_RESOURCE_PARAM")
    metrics_emission_timeout_ms: int = Field(default=250, ge=0, alias="METRICS_EMISSION_TIMEOUT_MS")
    metrics_emission_max_threads: int = Field(default=8, ge=1, alias="METRICS_EMISSION_MAX_THREADS")
    metrics_excluded_paths: list[str] = Field(default=["/api/metrics"], alias="METRICS_EXCLUDED_PATHS")
    enable_metrics_endpoint: bool = Field(default=True, alias="ENABLE_METRICS_ENDPOINT")

    @property
    def metrics_emission_timeout(self) -> float | None:
        """Emission timeout in seconds, or None for inline emission."""
        if self.metrics_emission_timeout_ms <= 0:
            return None
        return self.metrics_emission_timeout_ms / 1000.0


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
