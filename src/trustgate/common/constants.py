"""Centralized constants for TrustGate system configuration."""


# ===== SCORING =====
class ScoringConstants:
    SCORE_MIN = 0
    SCORE_MAX = 100

    # Decision thresholds (inclusive upper bounds)
    GRANT_MAX = 30
    CHALLENGE_MAX = 60

    # Identity pillar
    IDENTITY_VERIFIED_POINTS = 10

    # Device pillar
    DEVICE_TRUSTED_POINTS = 5
    DEVICE_NO_HISTORY_POINTS = 5
    DEVICE_NEW_POINTS = 25
    DEVICE_NONCOMPLIANT_POINTS = 50

    # Location pillar
    LOCATION_SAME_CITY_POINTS = 5
    LOCATION_SAME_COUNTRY_POINTS = 15
    LOCATION_DIFFERENT_COUNTRY_POINTS = 25
    LOCATION_NO_HISTORY_POINTS = 5

    # Behavior pillar
    BEHAVIOR_IMPOSSIBLE_TRAVEL_POINTS = 60
    BEHAVIOR_NORMAL_POINTS = 5
    BEHAVIOR_FIRST_LOGIN_POINTS = 10

    # Any pillar whose upstream signal is unavailable
    DEGRADED_POINTS = 5


# ===== TRAVEL PHYSICS =====
class TravelConstants:
    EARTH_RADIUS_KM = 6371.0
    MAX_TRAVEL_SPEED_KMH = 900.0  # commercial air travel
    MIN_MATERIAL_DISTANCE_KM = 100.0


# ===== AUDIT & LOGGING =====
class AuditConstants:
    QUEUE_SIZE = 10000
    FLUSH_TIMEOUT_SECONDS = 5.0
    QUEUE_GET_TIMEOUT = 1.0
    HASH_ALGORITHM = "sha256"
    MAX_WRITE_RETRIES = 3
    RETRY_BACKOFF_SECONDS = 0.5
    RECENT_ATTEMPT_CACHE_SIZE = 100000


# ===== EVENT DISPATCH =====
class DispatcherConstants:
    SUBSCRIBER_QUEUE_SIZE = 256
    SUBSCRIBER_POLL_TIMEOUT = 1.0


# ===== EXTERNAL PROVIDERS =====
class ProviderConstants:
    DEFAULT_TIMEOUT_SECONDS = 2.0
    EVALUATOR_TIMEOUT_SECONDS = 1.0
    EXECUTOR_MAX_WORKERS = 8
    PROVIDER_EXECUTOR_MAX_WORKERS = 16
    IP_API_URL = "http://ip-api.com/json/{ip}"


# ===== DATA & QUERY LIMITS =====
class DataConstants:
    DEFAULT_QUERY_LIMIT = 100
    MAX_QUERY_LIMIT = 1000
