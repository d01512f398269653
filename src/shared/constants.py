"""Default values for the building tile loader.

Values mirror the production deployment; every one of them can be overridden
through a TOML profile (see profiles.py).
"""

# --- Feature service (GeoServer WFS)
WFS_BASE_URL = 'http://localhost:18080/geoserver/aetem/ows'
WFS_LAYER_NAME = 'aetem:testAetem'
WFS_SERVICE = 'WFS'
WFS_VERSION = '2.0.0'
WFS_REQUEST = 'GetFeature'
# Response coordinates are forced to lon/lat
WFS_SRS_NAME = 'EPSG:4326'
# GeoJSON output
WFS_OUTPUT_FORMAT = 'application/json'
# Upper bound on features returned for one tile
WFS_MAX_FEATURES = 2000

# --- Tiling
# Altitude (m) above which buildings are neither loaded nor shown (50 km)
MIN_ZOOM_HEIGHT_M = 50_000.0
# Grid cell edge length in degrees (about 3 km)
TILE_SIZE_DEG = 0.03
# Neighborhood radius in tiles around the center tile (1 => 3x3)
TILE_NEIGHBORHOOD_RADIUS = 1
# Simultaneous tile requests
MAX_CONCURRENT_LOADS = 2
# Number of tiles kept in memory
TILE_CACHE_SIZE = 50
# Delay collapsing bursts of camera movement into one update
VIEWPORT_DEBOUNCE_MS = 500

# --- Building height inference
HEIGHT_PROPERTY_KEYS = ('A16',)
FLOOR_COUNT_PROPERTY_KEYS = ('A26', 'GRO_FLO_CO')
METERS_PER_FLOOR = 3.5
DEFAULT_BUILDING_HEIGHT_M = 6.0
MAX_BUILDING_HEIGHT_M = 600.0
MIN_POLYGON_VERTICES = 3

# --- HTTP
HTTP_OK = 200
HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403
HTTP_NOT_FOUND = 404
HTTP_TOO_MANY_REQUESTS = 429
HTTP_5XX_MIN = 500
HTTP_5XX_MAX = 600
HTTP_TIMEOUT_DEFAULT = 20.0
HTTP_RETRIES_DEFAULT = 2
HTTP_BACKOFF_FACTOR = 1.6

# HTTP response cache (aiohttp-client-cache, SQLite backend)
HTTP_CACHE_ENABLED = False
HTTP_CACHE_DIR = '.cache/wfs'
HTTP_CACHE_EXPIRE_HOURS = 24

# --- Diagnostics
# Log process memory every N loaded tiles
LOG_MEMORY_EVERY_TILES = 25

# --- Notifications
NOTIFY_LEVEL_INFO = 'info'
NOTIFY_LEVEL_WARNING = 'warning'
