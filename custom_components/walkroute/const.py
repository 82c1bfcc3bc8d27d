DOMAIN = "walkroute"
VERSION = "0.3.0"

# Config entry keys
CONF_ENTRY_NAME = "entry_name"
CONF_GUID = "guid"
CONF_TRACKED_ENTITY = "tracked_entity_id"
CONF_ROUTING_URL = "routing_url"
CONF_GEOCODING_URL = "geocoding_url"
CONF_UNITS = "units"
CONF_REFRESH_INTERVAL = "refresh_interval"
CONF_ORIGIN_EPSILON = "origin_epsilon"

UNITS_METRIC = "metric"
UNITS_IMPERIAL = "imperial"

# Backends
DEFAULT_ROUTING_URL = "https://routing.openstreetmap.de/routed-foot"
DEFAULT_GEOCODING_URL = "https://nominatim.openstreetmap.org"
WALKING_PROFILE = "foot"
USER_AGENT = f"HomeAssistant-WalkRoute/{VERSION}"

# Update intervals (seconds)
DEFAULT_REFRESH_INTERVAL = 30   # periodic route recompute while a destination is set
MIN_REFRESH_INTERVAL = 10

# Origin moves smaller than this (metres) do not trigger a recompute
DEFAULT_ORIGIN_EPSILON = 5.0

# Fallback origin when nothing usable is stored (Los Angeles city hall area)
DEFAULT_ORIGIN = (34.0522, -118.2437)

# Persistence
STORAGE_VERSION = 1
STORAGE_KEY_PREFIX = f"{DOMAIN}."
STORAGE_SAVE_DELAY = 1          # seconds; Store.async_delay_save coalesces writes
KEY_LOCATION = "location"
KEY_DESTINATION = "destination"

# HTTP
REQUEST_TIMEOUT = 10            # seconds, multiplied by attempt number for each retry
REQUEST_ATTEMPTS = 3

# Geocoder statuses
GEOCODE_OK = "OK"
GEOCODE_ZERO_RESULTS = "ZERO_RESULTS"
GEOCODE_ERROR = "ERROR"

# Bus event fired for every reported error
EVENT_ROUTE_ERROR = f"{DOMAIN}_error"

# Services
SERVICE_SET_DESTINATION = "set_destination"
SERVICE_SET_DESTINATION_ADDRESS = "set_destination_address"
SERVICE_CLEAR_DESTINATION = "clear_destination"
SERVICE_REFRESH_ROUTE = "refresh_route"

ATTR_ADDRESS = "address"
ATTR_ENTRY_ID = "entry_id"
