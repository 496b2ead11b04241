from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Iterator, Sequence

from exosystem.bodies import ImputationConfig, Planet, Star
from exosystem.errors import DegenerateSystemError
from exosystem.orbits import OrbitShape, apply_orbital_fixup, describe_orbit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlanetarySystem:
    """One node of the system tree.

    ``total_star_mass`` is fixed when the node is built. A copy made with
    ``dataclasses.replace`` keeps the old total even if its stars change.
    """

    stars: tuple[Star, ...]
    planets: tuple[Planet, ...]
    sub_systems: tuple[PlanetarySystem, ...]
    total_star_mass: float

    @property
    def mass_known(self) -> bool:
        """False when a star anywhere below this node has no reported mass."""
        return math.isfinite(self.total_star_mass)

    def iter_stars(self) -> Iterator[Star]:
        yield from self.stars
        for child in self.sub_systems:
            yield from child.iter_stars()

    def iter_planets(self) -> Iterator[Planet]:
        yield from self.planets
        for child in self.sub_systems:
            yield from child.iter_planets()

    def iter_nodes(self) -> Iterator[PlanetarySystem]:
        yield self
        for child in self.sub_systems:
            yield from child.iter_nodes()

    def find_planet(self, name: str) -> Planet | None:
        for planet in self.iter_planets():
            if planet.name == name:
                return planet
        return None

    def orbit_of(self, name: str) -> OrbitShape | None:
        """Orbit parameters of a planet, using the mass of the node that holds it."""
        for node in self.iter_nodes():
            for planet in node.planets:
                if planet.name == name:
                    return describe_orbit(planet, node.total_star_mass)
        return None


def sum_star_mass(stars: Iterable[Star], sub_systems: Iterable[PlanetarySystem]) -> float:
    """Direct stellar masses plus the already-computed totals of the children.

    A star without a mass makes the total NaN, which later fails any Kepler
    derivation that needs it.
    """
    total = 0.0
    for star in stars:
        if star.stellar_mass is None:
            logger.warning("Star %r has no mass; system mass is undefined", star.host_name)
            total += math.nan
        else:
            total += star.stellar_mass
    for child in sub_systems:
        total += child.total_star_mass
    return total


def build_system(
    stars: Sequence[Star],
    planets: Sequence[Planet],
    sub_systems: Sequence[PlanetarySystem] = (),
    config: ImputationConfig | None = None,
) -> PlanetarySystem:
    """Build one node from finished children and run the orbital fix-up on its own planets."""
    config = config or ImputationConfig()
    mass = sum_star_mass(stars, sub_systems)
    fixed = tuple(apply_orbital_fixup(planet, mass, config) for planet in planets)
    return PlanetarySystem(
        stars=tuple(stars),
        planets=fixed,
        sub_systems=tuple(sub_systems),
        total_star_mass=mass,
    )


def _check_inputs(stars: Sequence[Star], planets: Sequence[Planet]) -> None:
    if not stars and not planets:
        raise DegenerateSystemError("Cannot assemble a system from zero stars and zero planets")

    host_names: set[str] = set()
    duplicates: list[str] = []
    for star in stars:
        if star.host_name in host_names:
            duplicates.append(star.host_name)
        host_names.add(star.host_name)
    if duplicates:
        raise DegenerateSystemError(f"Duplicate star host names: {', '.join(sorted(set(duplicates)))}")

    orphans = [planet.name for planet in planets if planet.host_name not in host_names]
    if orphans:
        raise DegenerateSystemError(f"Planets without a host star in this system: {', '.join(orphans)}")


def assemble_system(
    stars: Sequence[Star],
    planets: Sequence[Planet],
    config: ImputationConfig | None = None,
    collapse_single: bool = False,
) -> PlanetarySystem:
    """Arrange stars and planets into a tree of sub-systems.

    Every star with non-circumbinary planets becomes a one-star sub-system
    holding them. Stars without such planets stay at the top level as lone
    stars, next to the circumbinary planets. The top level always wraps the
    sub-systems; with ``collapse_single`` set, a top level that would only
    wrap one sub-system is replaced by that sub-system.
    """
    _check_inputs(stars, planets)
    config = config or ImputationConfig()

    sub_systems: list[PlanetarySystem] = []
    lone_stars: list[Star] = []
    circumbinary: list[Planet] = []

    for star in stars:
        hosted = [planet for planet in planets if planet.host_name == star.host_name]
        single = [planet for planet in hosted if not planet.is_circumbinary]
        circumbinary.extend(planet for planet in hosted if planet.is_circumbinary)
        if single:
            sub_systems.append(build_system([star], single, config=config))
        else:
            lone_stars.append(star)

    if collapse_single and not lone_stars and not circumbinary and len(sub_systems) == 1:
        return sub_systems[0]

    logger.info(
        "Assembled system: %d lone stars, %d circumbinary planets, %d sub-systems",
        len(lone_stars),
        len(circumbinary),
        len(sub_systems),
    )
    return build_system(lone_stars, circumbinary, sub_systems, config=config)
