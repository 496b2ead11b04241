from __future__ import annotations

import json
import math
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from exosystem.assembly import PlanetarySystem
    from exosystem.bodies import Planet, Star


# Archive column -> entity attribute.
STAR_FIELD_MAP = {
    "sy_name": "system_name",
    "hostname": "host_name",
    "st_rad": "stellar_radius",
    "st_mass": "stellar_mass",
    "st_dens": "stellar_density",
    "ra": "ra",
    "dec": "dec",
    "sy_dist": "system_distance",
}

PLANET_FIELD_MAP = {
    "pl_name": "name",
    "hostname": "host_name",
    "pl_orbper": "orbital_period",
    "pl_orbsmax": "semi_major_axis",
    "pl_radj": "radius",
    "pl_bmassj": "mass",
    "pl_dens": "density",
    "pl_orbeccen": "orbital_eccentricity",
    "pl_orbincl": "orbital_inclination",
    "ra": "ra",
    "dec": "dec",
    "cb_flag": "orbit_binary",
    "sy_mnum": "num_moons",
}

STAR_ATTRIBUTES = list(STAR_FIELD_MAP.values())
PLANET_ATTRIBUTES = list(PLANET_FIELD_MAP.values()) + ["semi_minor_axis", "assumptions"]


def project_record(record: dict[str, Any], field_map: dict[str, str]) -> dict[str, Any]:
    """Pick the mapped archive columns out of ``record``, absent columns as None."""
    return {attribute: record.get(column) for column, attribute in field_map.items()}


def _json_number(value: Any) -> Any:
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def serialize_star(star: Star) -> dict[str, Any]:
    return {attribute: _json_number(getattr(star, attribute)) for attribute in STAR_ATTRIBUTES}


def serialize_planet(planet: Planet) -> dict[str, Any]:
    serialized: dict[str, Any] = {}
    for attribute in PLANET_ATTRIBUTES:
        value = getattr(planet, attribute)
        if attribute == "assumptions":
            serialized[attribute] = list(value)
        else:
            serialized[attribute] = _json_number(value)
    return serialized


def serialize_system(system: PlanetarySystem) -> dict[str, Any]:
    return {
        "total_star_mass": _json_number(system.total_star_mass),
        "mass_known": system.mass_known,
        "stars": [serialize_star(star) for star in system.stars],
        "planets": [serialize_planet(planet) for planet in system.planets],
        "sub_systems": [serialize_system(child) for child in system.sub_systems],
    }


def dumps_system(system: PlanetarySystem, indent: int | None = 2) -> str:
    return json.dumps(serialize_system(system), ensure_ascii=True, indent=indent)
