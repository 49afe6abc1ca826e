# --- Service Registry ---
SERVICE_LIST = {
    "CHAT": "chat",
    "CALL": "call",
    "FILE_SHARING": "fileSharing",
    "SPEECH2TEXT": "speech2text",
    "AVATAR": "avatar",
    "LIVEKIT": "livekit",
    # bootstrap and ping traffic, never resolved per service
    "OUTER": "outer",
}

DYN_SERVICE_LIST = [name for key, name in SERVICE_LIST.items() if key != "OUTER"]

# The slice of the resolved map handed to the call service manager
CALL_SERVICE_NAME = SERVICE_LIST["LIVEKIT"]

# --- Certificate Trust Modes ---
CERT_TYPE_SELF = "self"
CERT_TYPE_AUTHORITY = "authority"

# --- Latency Sentinels ---
# Marks a candidate or endpoint as unusable; always sorts after any timed entry
UNUSABLE_MS = -1

# Reported for a lone candidate, which is never probed
SINGLE_CANDIDATE_MS = 1

# Given back to every endpoint of a service once all of them were marked unusable
RESET_MS = 1

# HTTP status range that still counts as "server reachable" for a probe
REACHABLE_STATUS_MIN = 100
REACHABLE_STATUS_MAX = 499

# --- Timing (seconds) ---
DEFAULT_SELECT_THRESHOLD_SEC = 60
DEFAULT_GLOBAL_REFRESH_INTERVAL_SEC = 6 * 60 * 60
DEFAULT_CALL_REFRESH_INTERVAL_SEC = 30 * 60

# Upper bound for a single probe request
DEFAULT_PROBE_TIMEOUT_SEC = 5.0

# Upper bound for one whole fan-out pass; stragglers are dropped
DEFAULT_PROBE_PASS_TIMEOUT_SEC = 10.0

# Per-URL bound for the bootstrap document fetch
DEFAULT_BOOTSTRAP_TIMEOUT_SEC = 5.0

DEFAULT_CALL_API_TIMEOUT_SEC = 10.0

# Default thread pool size for probes and RPCs
DEFAULT_HTTP_MAX_WORKERS = 32

# --- Bootstrap RPC ---
BOOTSTRAP_SUCCESS_CODE = 0

# --- Call Service RPC ---
CALL_SERVICE_URL_PATH = "/v3/call/serviceurl"

# --- Persistent Storage Keys ---
GLOBAL_CONFIG_STORAGE_KEY = "key-global-config"
SERVICE_CONFIG_STORAGE_KEY = "key-tested-server-config"

DEFAULT_STORAGE_DIR = ".endpoint_resolver"

# --- Log payload key ---
LOG_EXTRA_KEY = "resolver"
