"""Shared model constants.

Values that the distance, energy and persistence code agree on, kept in
one place.
"""

# Mean earth radius used for great-circle distances (meters)
EARTH_RADIUS_M = 6371000.0

# Energy model: kcal burned per kg of body weight per km walked
KCAL_PER_KG_KM = 0.9

# Accepted body weight range, both bounds exclusive (kg)
MIN_WEIGHT_KG = 20.0
MAX_WEIGHT_KG = 300.0

# Key-value store keys
HISTORY_KEY = "history"
WEIGHT_KEY = "weight"

# Export file naming: walk_<epoch-millis>.gpx
EXPORT_PREFIX = "walk_"
EXPORT_SUFFIX = ".gpx"
