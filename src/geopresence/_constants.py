"""Internal constants shared across the library."""

USER_AGENT = "geopresence/1 (+aiohttp)"

# ------------------------------------------------------------------
# Geodesy
# ------------------------------------------------------------------

#: Approximate metres per degree of latitude (flat-earth approximation).
METERS_PER_DEGREE = 111_000.0

#: Mean Earth radius used for haversine distances.
EARTH_RADIUS_METERS = 6_371_000.0

# cos(latitude) floor so the longitude delta stays finite at the poles.
MIN_LONGITUDE_SCALE = 1e-6

# ------------------------------------------------------------------
# Radar interaction
# ------------------------------------------------------------------

RADAR_ZOOM_MIN = 0.5
RADAR_ZOOM_MAX = 3.0
RADAR_WHEEL_ZOOM_IN = 1.1
RADAR_WHEEL_ZOOM_OUT = 0.9
RADAR_BUTTON_ZOOM_STEP = 1.2

# ------------------------------------------------------------------
# Camera seeding  (zoom levels per projection)
# ------------------------------------------------------------------

VIEWER_ZOOM_GLOBE = 3.0
VIEWER_ZOOM_MERCATOR = 12.0
WORLD_ZOOM_GLOBE = 1.0
WORLD_ZOOM_MERCATOR = 2.0

# ------------------------------------------------------------------
# Directory endpoints
# ------------------------------------------------------------------

NEARBY_PARTICIPANTS_ENDPOINT = "/api/location/nearby/{participant_id}"
NEARBY_COLLECTIBLES_ENDPOINT = "/api/nft/nearby"
SUBMIT_LOCATION_ENDPOINT = "/api/location/submit"
TOGGLE_VISIBILITY_ENDPOINT = "/api/location/toggle-visibility"
