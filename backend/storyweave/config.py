from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Storyweave"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Database
    DATABASE_URL: str = "sqlite:///./data/stories.db"

    # Ollama
    OLLAMA_HOST: str = "http://localhost:11434"
    OLLAMA_MODEL_ANALYSIS: str = "llama3.1"
    OLLAMA_MODEL_SIMILARITY: str = "llama3.1"
    OLLAMA_TIMEOUT: int = 300  # seconds

    # NewsAPI
    NEWS_API_BASE_URL: str = "https://newsapi.org/v2"
    NEWS_API_KEY: str = ""
    NEWS_API_TIMEOUT: int = 30  # seconds
    NEWS_API_PAGE_SIZE: int = 100
    MAX_ARTICLE_AGE_DAYS: int = 3

    # Clustering
    MAX_SOURCES_PER_STORY: int = 5
    MATCH_WINDOW_HOURS: int = 72
    MATCH_THRESHOLD: float = 0.25
    BORDERLINE_LOWER: float = 0.25
    BORDERLINE_UPPER: float = 0.4
    ORACLE_CONFIDENCE_THRESHOLD: float = 0.6
    ORACLE_TIEBREAK_CANDIDATES: int = 3
    MAX_CONCURRENT_INGESTS: int = 3

    # Analysis
    ANALYSIS_CACHE_TTL_HOURS: int = 12
    ANALYSIS_CACHE_MAX_SIZE: int = 100
    SIGNIFICANT_UPDATE_HOURS: int = 8
    NOVELTY_THRESHOLD: float = 0.3
    MAJOR_IMPACT_MAX_SOURCES: int = 2
    MAJOR_IMPACT_STALE_HOURS: int = 12
    STORY_RETENTION_DAYS: int = 7

    # Recheck scheduler
    RECHECK_ENABLED: bool = True
    RECHECK_INITIAL_DELAY_SECONDS: int = 60
    RECHECK_INTERVAL_MINUTES: int = 15
    ACTIVE_STORY_WINDOW_HOURS: int = 24
    RECHECK_BATCH_SIZE: int = 5
    RECHECK_BATCH_PAUSE_SECONDS: float = 2.0
    RECHECK_MAX_LOOKBACK_DAYS: int = 3
    RECHECK_QUERY_MAX_TERMS: int = 6
    BACKOFF_BASE_MINUTES: int = 5
    BACKOFF_MAX_MINUTES: int = 60

    # Skip every outbound NewsAPI call and work from stored stories only
    DATABASE_ONLY_MODE: bool = False

    # CORS (for local development)
    CORS_ORIGINS: list = ["http://localhost:3000", "http://localhost:5173"]

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
