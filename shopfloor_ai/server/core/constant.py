"""Server-wide constants."""

PROJECT_NAME = "ShopFloor-AI"
API_V1_STR = "/api/v1"

# Request headers carrying the caller identity set by the upstream auth proxy.
USER_ID_HEADER = "X-User-Id"
SHOP_ID_HEADER = "X-Shop-Id"

# Live event stream polling.
STREAM_POLL_INTERVAL_SECONDS = 0.5
STREAM_MAX_IDLE_CYCLES = 120
