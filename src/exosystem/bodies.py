from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from typing import Any

import numpy as np

from exosystem.constants import (
    DEFAULT_AXIS_RANGE,
    DEFAULT_MASS_RANGE,
    HIGH_MASS_RADIUS_EXPONENT,
    LOW_MASS_RADIUS_EXPONENT,
    MASS_RADIUS_TRANSITION,
    NOTE_INVALID_ECCENTRICITY,
    NOTE_MISSING_MASS,
    NOTE_MISSING_MASS_AND_RADIUS,
    NOTE_MISSING_MASS_AND_RADIUS_NOT_IMPUTED,
    NOTE_MISSING_RADIUS,
    PLANET_IDENTIFIER,
    STAR_IDENTIFIER,
)
from exosystem.errors import ImputationExhaustedError, MalformedRecordError
from exosystem.schema import PLANET_FIELD_MAP, STAR_FIELD_MAP, project_record

logger = logging.getLogger(__name__)


@dataclass
class ImputationConfig:
    """Policy for filling values the catalog does not report.

    With ``allow_random_fallback`` off, bodies missing both values of a pair
    are left incomplete instead of receiving a random draw.
    """

    allow_random_fallback: bool = True
    mass_range: tuple[float, float] = DEFAULT_MASS_RANGE
    axis_range: tuple[float, float] = DEFAULT_AXIS_RANGE
    seed: int | None = None
    rng: np.random.Generator = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.rng = np.random.default_rng(self.seed)

    def draw_mass(self) -> float:
        low, high = self.mass_range
        return float(self.rng.uniform(low, high))

    def draw_axis(self) -> float:
        low, high = self.axis_range
        return float(self.rng.uniform(low, high))


@dataclass(frozen=True)
class Star:
    system_name: str | None
    host_name: str
    stellar_radius: float | None = None
    stellar_mass: float | None = None
    stellar_density: float | None = None
    ra: float | None = None
    dec: float | None = None
    system_distance: float | None = None


@dataclass(frozen=True)
class Planet:
    name: str
    host_name: str | None
    orbital_period: float | None = None
    semi_major_axis: float | None = None
    semi_minor_axis: float | None = None
    radius: float | None = None
    mass: float | None = None
    density: float | None = None
    orbital_eccentricity: float | None = None
    orbital_inclination: float | None = None
    ra: float | None = None
    dec: float | None = None
    orbit_binary: int = 0
    num_moons: int | None = None
    assumptions: tuple[str, ...] = ()

    @property
    def is_circumbinary(self) -> bool:
        return bool(self.orbit_binary)

    def with_assumption(self, note: str, **changes: Any) -> Planet:
        return replace(self, assumptions=self.assumptions + (note,), **changes)


def semi_minor_axis(semi_major: float | None, eccentricity: float | None) -> float | None:
    if semi_major is None or eccentricity is None:
        return None
    return semi_major * math.sqrt(1 - eccentricity**2)


def radius_from_mass(mass: float) -> float:
    if mass < MASS_RADIUS_TRANSITION:
        return mass**LOW_MASS_RADIUS_EXPONENT
    return mass**HIGH_MASS_RADIUS_EXPONENT


def mass_from_radius(radius: float) -> float:
    # Large radii rarely come without a mass, so only the low-mass branch is inverted.
    return radius ** (1 / LOW_MASS_RADIUS_EXPONENT)


def fix_mass_radius(planet: Planet, config: ImputationConfig) -> Planet:
    """Fill a missing mass or radius from the exoplanet mass-radius relation.

    Returns ``planet`` untouched when both values are present, so applying it
    twice is the same as applying it once.
    """
    if planet.mass is None and planet.radius is None:
        if not config.allow_random_fallback:
            partial = planet.with_assumption(NOTE_MISSING_MASS_AND_RADIUS_NOT_IMPUTED)
            raise ImputationExhaustedError(
                f"Planet {planet.name!r} has neither mass nor radius and random fill-in is disabled",
                planet=partial,
            )
        mass = config.draw_mass()
        return planet.with_assumption(
            NOTE_MISSING_MASS_AND_RADIUS,
            mass=mass,
            radius=radius_from_mass(mass),
        )
    if planet.radius is None:
        return planet.with_assumption(NOTE_MISSING_RADIUS, radius=radius_from_mass(planet.mass))
    if planet.mass is None:
        return planet.with_assumption(NOTE_MISSING_MASS, mass=mass_from_radius(planet.radius))
    return planet


def _optional_int(value: Any) -> int | None:
    if value is None:
        return None
    try:
        return int(round(float(value)))
    except (TypeError, ValueError):
        return None


def make_star(record: dict[str, Any]) -> Star:
    """Project a reduced stellar-host record onto a Star.

    A missing ``st_mass`` stays None here; the assembler decides what a
    massless star means for its system.
    """
    if record.get(STAR_IDENTIFIER) is None:
        raise MalformedRecordError(
            f"Star record has no {STAR_IDENTIFIER!r}",
            stage="body_factory",
            record=record,
        )
    star = Star(**project_record(record, STAR_FIELD_MAP))
    if star.stellar_mass is None:
        logger.warning("Star %r has no reported mass", star.host_name)
    return star


def make_planet(record: dict[str, Any], config: ImputationConfig | None = None) -> Planet:
    if record.get(PLANET_IDENTIFIER) is None:
        raise MalformedRecordError(
            f"Planet record has no {PLANET_IDENTIFIER!r}",
            stage="body_factory",
            record=record,
        )
    config = config or ImputationConfig()
    values = project_record(record, PLANET_FIELD_MAP)
    values["orbit_binary"] = 1 if values.get("orbit_binary") else 0
    values["num_moons"] = _optional_int(values.get("num_moons"))
    assumptions: tuple[str, ...] = ()
    eccentricity = values.get("orbital_eccentricity")
    if eccentricity is not None and not 0 <= eccentricity <= 1:
        logger.warning("Planet %r has eccentricity %r outside [0, 1]; dropped", values.get("name"), eccentricity)
        values["orbital_eccentricity"] = None
        assumptions = (NOTE_INVALID_ECCENTRICITY,)
    values["semi_minor_axis"] = semi_minor_axis(values.get("semi_major_axis"), values.get("orbital_eccentricity"))
    return fix_mass_radius(Planet(**values, assumptions=assumptions), config)
