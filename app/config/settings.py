from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None  # Required for admin operations like password changes

    # Goong maps (tiles key is handed to clients, services key stays server-side)
    goong_maps_api_key: Optional[str] = None
    goong_api_key: Optional[str] = None
    goong_base_url: str = "https://rsapi.goong.io"
    goong_timeout_seconds: float = 10.0

    # Fallback coordinates when the client cannot provide a position
    default_latitude: float = 21.0285
    default_longitude: float = 105.8542
    support_point_default_latitude: float = 10.8231
    support_point_default_longitude: float = 106.6297
    nearby_radius_km: Optional[float] = None  # None keeps "nearby" alerts unfiltered

    # Per-user notification read/delete overlay
    notification_state_dir: str = ".notification_states"

    # App
    app_name: str = "sos-relief-backend"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://localhost:5173,http://localhost:8080,http://127.0.0.1:5173"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
