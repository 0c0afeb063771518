from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # --- Runtime ---
    ENV: str = "dev"  # dev|prod
    CASAMATCH_DB_URL: str = "sqlite+aiosqlite:///./casamatch.db"

    # --- Minimal B2B Auth (API key) ---
    # Send: X-API-Key: <key>
    API_KEY: str | None = None

    # --- Outbound HTTP ---
    HTTP_TIMEOUT_S: float = 30.0
    HTTP_MAX_RETRIES: int = 0  # 0 = single attempt
    HTTP_BACKOFF_BASE_S: float = 0.5

    # --- Provider upstreams (credentials live in property_provider_settings, not here) ---
    SHOWCASE_IDX_BASE_URL: str = "https://api.showcaseidx.com/v2"
    ZILLOW_BRIDGE_BASE_URL: str = "https://api.bridgedataoutput.com/api/v2"
    REALTOR_RAPIDAPI_HOST: str = "realtor-data1.p.rapidapi.com"

    # Offline Showcase-format fixture used for demos without credentials
    DEMO_LISTINGS_PATH: str = "data/demo_listings.json"

    # --- Aggregation ---
    PROVIDER_TIMEOUT_S: float = 10.0
    SETTINGS_CACHE_TTL_S: float = 300.0  # 0 disables caching
    REJECTED_CALL_POLICY: str = "record"  # record|drop

    # Caller-side ordering for lifestyle matches
    PREFERRED_PROVIDER: str | None = "xposure"
    PREFERRED_PROVIDER_TOP_N: int = 5

    # --- Scheduler tuning ---
    SCHED_PROVIDER_HEALTH_INTERVAL_MINUTES: int = 60


settings = Settings()
