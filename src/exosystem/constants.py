from __future__ import annotations

EXOPLANET_ARCHIVE_TAP_SYNC = "https://exoplanetarchive.ipac.caltech.edu/TAP/sync"

STAR_TABLE = "stellarhosts"
PLANET_TABLE = "pscomppars"

STAR_IDENTIFIER = "hostname"
PLANET_IDENTIFIER = "pl_name"

STAR_COLUMNS = [
    "sy_name",
    "hostname",
    "st_rad",
    "st_mass",
    "st_dens",
    "ra",
    "dec",
    "sy_dist",
]

PLANET_COLUMNS = [
    "pl_name",
    "hostname",
    "pl_orbper",
    "pl_orbsmax",
    "pl_radj",
    "pl_bmassj",
    "pl_dens",
    "pl_orbeccen",
    "pl_orbincl",
    "ra",
    "dec",
    "cb_flag",
    "sy_mnum",
]

# Jupiter masses. Most catalogued exoplanets fall inside this band.
DEFAULT_MASS_RANGE = (0.005, 3.005)

# au
DEFAULT_AXIS_RANGE = (0.1, 0.25)

# ~120 Earth masses expressed in Jupiter masses.
MASS_RADIUS_TRANSITION = 120 / 308
LOW_MASS_RADIUS_EXPONENT = 0.55
HIGH_MASS_RADIUS_EXPONENT = 0.03

NOTE_MISSING_MASS_AND_RADIUS = "Missing mass and radius"
NOTE_MISSING_MASS_AND_RADIUS_NOT_IMPUTED = "Missing mass and radius (not imputed)"
NOTE_MISSING_RADIUS = "Missing radius"
NOTE_MISSING_MASS = "Missing mass"
NOTE_MISSING_PERIOD_AND_AXIS = "Missing semi-major axis and orbital period"
NOTE_MISSING_PERIOD_AND_AXIS_NOT_IMPUTED = "Missing semi-major axis and orbital period (not imputed)"
NOTE_MISSING_PERIOD = "Missing orbital period"
NOTE_MISSING_AXIS = "Missing semi-major axis"
NOTE_CIRCULAR_ORBIT = "Assumed circular orbit"
NOTE_CIRCULAR_ORBIT_PLACEHOLDER = "Assumed circular orbit with placeholder radius"
NOTE_INVALID_ECCENTRICITY = "Invalid orbital eccentricity"
