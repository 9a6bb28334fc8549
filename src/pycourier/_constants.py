"""Internal constants shared across the library."""

BASE_URL = "http://3.110.207.229/api"
USER_AGENT = "pycourier"

#: WebSocket close code for an intentional, orderly shutdown.
NORMAL_CLOSURE = 1000

# ------------------------------------------------------------------
# REST endpoints
# ------------------------------------------------------------------

LOGIN_ENDPOINT = "/delivery/users"
PROFILE_ENDPOINT = "/deliveryme"
ORDERS_ENDPOINT = "/deliveryboy/orders"
ORDERS_ENDPOINT_ALT = "/orders/delivery/me"
LOCATION_ENDPOINT = "/delivery/update-location"
LOCATION_ENDPOINT_ALT = "/deliveryupdate"


def order_status_endpoint(order_id: str) -> str:
    return f"/orderdeliveryupdate/{order_id}/status"


def order_track_endpoint(order_id: str) -> str:
    return f"/deliveryordertrack/{order_id}"


def channel_path(driver_id: str) -> str:
    return f"/ws/delivery/{driver_id}"


# ------------------------------------------------------------------
# Credential store keys
# ------------------------------------------------------------------

STORAGE_TOKEN_KEY = "@delivery_token"
STORAGE_DRIVER_ID_KEY = "@delivery_id"
STORAGE_ROLE_KEY = "@delivery_role"
STORAGE_PROFILE_KEY = "@delivery_profile"

STORAGE_KEYS: tuple[str, ...] = (
    STORAGE_TOKEN_KEY,
    STORAGE_DRIVER_ID_KEY,
    STORAGE_ROLE_KEY,
    STORAGE_PROFILE_KEY,
)

#: Placeholder the backend uses when a customer has no name on file.
UNKNOWN_CUSTOMER_NAME = "Unknown"
DEFAULT_CUSTOMER_LABEL = "Customer"
