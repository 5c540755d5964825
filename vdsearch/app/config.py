import os


def _get_bool_env(name: str, default: bool) -> bool:
	raw = os.environ.get(name)
	if raw is None:
		return default
	return raw.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
	raw = os.environ.get(name)
	if raw is None:
		return default
	try:
		return int(raw)
	except ValueError:
		return default


def _get_float_env(name: str, default: float | None) -> float | None:
	raw = os.environ.get(name)
	if raw is None or not raw.strip():
		return default
	try:
		return float(raw)
	except ValueError:
		return default


# Google Custom Search JSON API
SEARCH_API_URL = os.environ.get("SEARCH_API_URL", "https://www.googleapis.com/customsearch/v1")
SEARCH_API_KEY = os.environ.get("SEARCH_API_KEY")
SEARCH_ENGINE_ID = os.environ.get("SEARCH_ENGINE_ID")
# No timeout unless explicitly configured
SEARCH_API_TIMEOUT_SECONDS = _get_float_env("SEARCH_API_TIMEOUT_SECONDS", None)
SEARCH_RESULTS_PER_PAGE = 10
SEARCH_MAX_PAGES = 10

# Query suggestions
SUGGEST_API_URL = os.environ.get("SUGGEST_API_URL", "https://suggestqueries.google.com/complete/search")
SUGGEST_API_TIMEOUT_SECONDS = _get_float_env("SUGGEST_API_TIMEOUT_SECONDS", 5.0)

# IP based geolocation
GEOLOCATION_API_URL = os.environ.get("GEOLOCATION_API_URL", "https://ipapi.co")
GEOLOCATION_TIMEOUT_SECONDS = _get_float_env("GEOLOCATION_TIMEOUT_SECONDS", 10.0)
GEOLOCATION_CACHE_TTL = _get_int_env("GEOLOCATION_CACHE_TTL", 60 * 60)

# Supabase (PostgREST) tables
SUPABASE_URL = os.environ.get("SUPABASE_URL")
SUPABASE_KEY = os.environ.get("SUPABASE_KEY")
SUPABASE_TIMEOUT_SECONDS = _get_float_env("SUPABASE_TIMEOUT_SECONDS", 10.0)
PROMOTIONS_TABLE = os.environ.get("PROMOTIONS_TABLE", "promotions")
SEARCH_HISTORY_TABLE = os.environ.get("SEARCH_HISTORY_TABLE", "search_history")
SEARCH_HISTORY_LIMIT = _get_int_env("SEARCH_HISTORY_LIMIT", 100)

# Admin access
ADMIN_PASSWORD = os.environ.get("ADMIN_PASSWORD")
APP_JWT_SECRET = os.environ.get("APP_JWT_SECRET")
APP_JWT_ALGORITHM = os.environ.get("APP_JWT_ALGORITHM", "HS256")
APP_JWT_ISSUER = os.environ.get("APP_JWT_ISSUER", "vd-search")
APP_JWT_AUDIENCE = os.environ.get("APP_JWT_AUDIENCE", "vd-search")
ADMIN_ACCESS_TOKEN_TTL_SECONDS = _get_int_env("ADMIN_ACCESS_TOKEN_TTL_SECONDS", 60 * 60)

CORS_ALLOW_ORIGINS = tuple(
	part.strip()
	for part in os.environ.get("CORS_ALLOW_ORIGINS", "http://localhost:3000").split(",")
	if part.strip()
)

# Observability configuration
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
ENABLE_CLOUD_LOGGING = _get_bool_env("ENABLE_CLOUD_LOGGING", False)
CLOUD_LOGGING_LOG_NAME = os.environ.get("CLOUD_LOGGING_LOG_NAME", "vd-search")
CLOUD_LOGGING_EXCLUDED_LOGGERS = tuple(
	part.strip()
	for part in os.environ.get("CLOUD_LOGGING_EXCLUDED_LOGGERS", "httpx").split(",")
	if part.strip()
)

ENABLE_PROMETHEUS_METRICS = _get_bool_env("ENABLE_PROMETHEUS_METRICS", False)
PROMETHEUS_METRICS_NAMESPACE = os.environ.get("PROMETHEUS_METRICS_NAMESPACE", "vdsearch")
PROMETHEUS_METRICS_SUBSYSTEM = os.environ.get("PROMETHEUS_METRICS_SUBSYSTEM", "api")

# Cache configuration (geolocation lookups)
CACHE_REDIS_URL = os.environ.get("CACHE_REDIS_URL")
CACHE_NAMESPACE = os.environ.get("CACHE_NAMESPACE")

# Per-client view sessions (in memory only)
VIEW_SESSION_IDLE_SECONDS = _get_int_env("VIEW_SESSION_IDLE_SECONDS", 60 * 60 * 12)
