"""
Loopwatch Configuration
"""
from pydantic_settings import BaseSettings
from pydantic import Field
from typing import List
from pathlib import Path


class Settings(BaseSettings):
    # Project paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent

    # Trading backend API (all endpoints live under the same base path)
    API_BASE_URL: str = "http://127.0.0.1:8080"
    API_BASE_PATH: str = "/api/trading"

    # Polling intervals (seconds)
    STATUS_POLL_INTERVAL_S: float = 15
    ACCOUNT_POLL_INTERVAL_S: float = 30
    POSITIONS_POLL_INTERVAL_S: float = 20
    DECISIONS_POLL_INTERVAL_S: float = 60
    TRADES_POLL_INTERVAL_S: float = 30
    EQUITY_CURVE_POLL_INTERVAL_S: float = 60

    # Paged endpoints
    DECISIONS_LIMIT: int = 10
    TRADES_LIMIT: int = 100

    # Endpoint names that are never scheduled
    DISABLED_ENDPOINTS: List[str] = Field(default_factory=list)

    # HTTP
    REQUEST_TIMEOUT_S: float = 10.0
    POLL_RETRY_COUNT: int = 1  # One immediate retry inside a single poll

    # Display
    DISPLAY_TIMEZONE: str = "Asia/Shanghai"
    TOOLTIP_MARGIN_PX: int = 8
    TOOLTIP_OFFSET_PX: int = 12
    CHART_WIDTH_PX: int = 800
    CHART_HEIGHT_PX: int = 360

    # Dashboard server
    DASHBOARD_HOST: str = "0.0.0.0"
    DASHBOARD_PORT: int = 8890
    BROADCAST_INTERVAL_S: float = 1.0

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
