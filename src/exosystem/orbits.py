"""Kepler's third law in catalog units, and the fix-ups built on it.

Periods are in days, semi-major axes in au, enclosing masses in solar masses.
The planet's own mass is neglected against the stellar mass.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import astropy.units as u
import numpy as np
from astropy.constants import G

from exosystem.bodies import ImputationConfig, Planet, semi_minor_axis
from exosystem.constants import (
    NOTE_CIRCULAR_ORBIT,
    NOTE_CIRCULAR_ORBIT_PLACEHOLDER,
    NOTE_MISSING_AXIS,
    NOTE_MISSING_PERIOD,
    NOTE_MISSING_PERIOD_AND_AXIS,
    NOTE_MISSING_PERIOD_AND_AXIS_NOT_IMPUTED,
)
from exosystem.errors import DegenerateSystemError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrbitShape:
    semi_major_axis: float
    semi_minor_axis: float
    assumption: str | None = None


def _require_mass(total_star_mass: float | None, planet_name: str) -> float:
    if total_star_mass is None or not math.isfinite(total_star_mass) or total_star_mass <= 0:
        raise DegenerateSystemError(
            f"Cannot apply Kepler's third law to {planet_name!r}: "
            f"enclosing stellar mass is {total_star_mass!r}"
        )
    return total_star_mass


def orbital_period_days(semi_major_axis_au: float, total_star_mass: float) -> float:
    """P = 2*pi*sqrt(a^3 / (G*M))."""
    a = semi_major_axis_au * u.au
    m = total_star_mass * u.M_sun
    period = 2 * np.pi * np.sqrt(a**3 / (G * m))
    return float(period.to(u.day).value)


def semi_major_axis_au(orbital_period: float, total_star_mass: float) -> float:
    """a = cbrt(G*M*P^2 / (4*pi^2))."""
    p = orbital_period * u.day
    m = total_star_mass * u.M_sun
    axis = (G * m * p**2 / (4 * np.pi**2)) ** (1 / 3)
    return float(axis.to(u.au).value)


def _is_blank(value: float | None) -> bool:
    return value is None or value == 0


def apply_orbital_fixup(planet: Planet, total_star_mass: float, config: ImputationConfig) -> Planet:
    """Return ``planet`` with a missing period or semi-major axis derived.

    ``total_star_mass`` is the mass enclosed by the planet's orbit, i.e. the
    total of the system node that directly holds the planet.
    """
    period_blank = _is_blank(planet.orbital_period)
    axis_blank = _is_blank(planet.semi_major_axis)

    if period_blank and axis_blank:
        if not config.allow_random_fallback:
            logger.warning("Planet %r has neither period nor semi-major axis; left blank", planet.name)
            return planet.with_assumption(NOTE_MISSING_PERIOD_AND_AXIS_NOT_IMPUTED)
        mass = _require_mass(total_star_mass, planet.name)
        axis = config.draw_axis()
        return planet.with_assumption(
            NOTE_MISSING_PERIOD_AND_AXIS,
            semi_major_axis=axis,
            semi_minor_axis=semi_minor_axis(axis, planet.orbital_eccentricity),
            orbital_period=orbital_period_days(axis, mass),
        )
    if period_blank:
        mass = _require_mass(total_star_mass, planet.name)
        return planet.with_assumption(
            NOTE_MISSING_PERIOD,
            orbital_period=orbital_period_days(planet.semi_major_axis, mass),
        )
    if axis_blank:
        mass = _require_mass(total_star_mass, planet.name)
        axis = semi_major_axis_au(planet.orbital_period, mass)
        return planet.with_assumption(
            NOTE_MISSING_AXIS,
            semi_major_axis=axis,
            semi_minor_axis=semi_minor_axis(axis, planet.orbital_eccentricity),
        )
    return planet


def describe_orbit(planet: Planet, total_star_mass: float) -> OrbitShape | None:
    """Numeric ellipse parameters a renderer needs to draw the orbit.

    Falls back to a circular orbit when the eccentricity is unknown, and to
    the Kepler radius when only the period is known. With neither, the
    circle's radius is the enclosing stellar mass read as au, a placeholder
    so the planet can still be drawn; None if that mass is unknown too.
    """
    if planet.semi_major_axis:
        if planet.orbital_eccentricity is not None:
            minor = planet.semi_minor_axis
            if minor is None:
                minor = semi_minor_axis(planet.semi_major_axis, planet.orbital_eccentricity)
            return OrbitShape(planet.semi_major_axis, minor)
        return OrbitShape(planet.semi_major_axis, planet.semi_major_axis, NOTE_CIRCULAR_ORBIT)
    if planet.orbital_period:
        radius = semi_major_axis_au(planet.orbital_period, _require_mass(total_star_mass, planet.name))
        return OrbitShape(radius, radius, NOTE_CIRCULAR_ORBIT)
    if total_star_mass is not None and math.isfinite(total_star_mass) and total_star_mass > 0:
        return OrbitShape(total_star_mass, total_star_mass, NOTE_CIRCULAR_ORBIT_PLACEHOLDER)
    return None
