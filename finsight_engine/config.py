"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Service
    service_name: str = "finsight-engine"
    log_level: str = "INFO"

    # Analysis windows
    analysis_lookback_months: int = 6
    stability_lookback_months: int = 12
    runway_lookback_months: int = 6
    anomaly_lookback_days: int = 90

    # Monte Carlo
    monte_carlo_simulations: int = 1000
    monte_carlo_seed: int | None = 42  # fixed so outlooks are reproducible; None draws fresh entropy per run


settings = Settings()
