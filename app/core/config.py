"""
Configuration Management
Loads and validates environment variables
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Application settings from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )
    BASE_URL: str = "http://localhost:8000"

    # Upstream catalog API
    UPSTREAM_API_BASE: str = "https://api.ztcgi.com/api"
    STATIC_BASE: str = "https://static.ztcuc.com"
    UPSTREAM_USER_AGENT: str = (
        "Mozilla/5.0 (Linux; Android 11; MI 9 Build/RKQ1.200826.002; wv) "
        "AppleWebKit/537.36 (KHTML, like Gecko) Version/4.0 "
        "Chrome/137.0.7151.115 Mobile Safari/537.36;webank/h5face;webank/1.0;"
        "netType:NETWORK_WIFI;appVersion:423;packageName:com.jp3.xg3"
    )
    UPSTREAM_REQUESTED_WITH: str = "com.jp3.xg3"
    UPSTREAM_TIMEOUT: float = 10.0
    UPSTREAM_SEARCH_PATH: str = "/video/search"
    HOT_BUCKET_KEY: str = "32"  # "Now showing" bucket of the hot list

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"

    # Cache TTLs (seconds)
    CACHE_TTL_CATEGORIES: int = 3600  # 1 hour
    CACHE_TTL_STATIC_DOMAIN: int = 21600  # 6 hours

    # Background Tasks
    STATIC_DOMAIN_REFRESH_HOURS: float = 6  # Hours between static domain refreshes

    # Search
    SEARCH_PAGE_SIZE: int = 20
    SEARCH_DEBOUNCE_MS: int = 500
    SEARCH_MIN_LENGTH: int = 2
    SEARCH_HISTORY_LIMIT: int = 10
    SEARCH_HISTORY_KEY: str = "search:history"

    # Source lines, highest priority first
    LINE_PRIORITY: List[str] = ["蓝光线路", "超清线路", "高清线路", "标清线路", "普通线路"]
    HIGH_BITRATE_MARKERS: List[str] = ["蓝光", "超清", "4K", "1080"]
    PRIORITY_SOURCE_KEY: str = "vip_source"

    # Playback probing
    PROBE_TIMEOUT: float = 8.0
    PROBE_MAX_RECOVERIES: int = 2
    ADAPTIVE_STREAMING: bool = True  # hls engine available
    NATIVE_HLS: bool = False  # runtime plays application/vnd.apple.mpegurl itself

    # API Rate Limits (requests per second)
    UPSTREAM_RATE_LIMIT: int = 20

    # Development
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    DISABLE_RATE_LIMITING: bool = False  # Set to True to disable rate limiting for local dev


settings = Settings()
