from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from exosystem.assembly import PlanetarySystem, assemble_system
from exosystem.bodies import ImputationConfig, Planet, Star, make_planet, make_star
from exosystem.constants import DEFAULT_AXIS_RANGE, DEFAULT_MASS_RANGE, PLANET_IDENTIFIER, STAR_IDENTIFIER
from exosystem.errors import ImputationExhaustedError, MalformedRecordError
from exosystem.reduction import reduce_records
from exosystem.schema import serialize_system
from exosystem.sources import ExoplanetArchiveClient, JsonCache, fetch_system_rows

logger = logging.getLogger(__name__)


@dataclass
class PipelineConfig:
    timeout_s: float = 30.0
    requests_per_second: float = 2.0
    retries: int = 2
    fetch_workers: int = 1
    cache_path: Path | None = None
    disable_remote: bool = False
    allow_random_fallback: bool = True
    mass_range: tuple[float, float] = DEFAULT_MASS_RANGE
    axis_range: tuple[float, float] = DEFAULT_AXIS_RANGE
    seed: int | None = None
    collapse_single: bool = False

    def imputation(self) -> ImputationConfig:
        return ImputationConfig(
            allow_random_fallback=self.allow_random_fallback,
            mass_range=self.mass_range,
            axis_range=self.axis_range,
            seed=self.seed,
        )


@dataclass(frozen=True)
class Rejection:
    stage: str
    identifier: str | None
    message: str


@dataclass
class PipelineResult:
    system: PlanetarySystem
    rejections: list[Rejection] = field(default_factory=list)

    def summary(self) -> dict[str, Any]:
        tree = serialize_system(self.system)
        return {
            "stars": sum(1 for _ in self.system.iter_stars()),
            "planets": sum(1 for _ in self.system.iter_planets()),
            "total_star_mass": tree["total_star_mass"],
            "mass_known": tree["mass_known"],
            "rejections": [rejection.__dict__ for rejection in self.rejections],
            "system": tree,
        }


class SystemPipeline:
    """Raw catalog rows -> reduced records -> bodies -> system tree.

    Failures tied to one record are logged and collected as rejections so
    sibling bodies still make it into the tree. Assembly and archive errors
    propagate.
    """

    def __init__(self, config: PipelineConfig | None = None) -> None:
        self.config = config or PipelineConfig()
        self.imputation = self.config.imputation()
        self.cache = JsonCache(self.config.cache_path) if self.config.cache_path else None
        if not self.config.disable_remote:
            self.client: ExoplanetArchiveClient | None = ExoplanetArchiveClient(
                timeout_s=self.config.timeout_s,
                requests_per_second=self.config.requests_per_second,
                cache=self.cache,
                retries=self.config.retries,
            )
        else:
            self.client = None

    def run(self, system_name: str) -> PipelineResult:
        if self.client is None:
            raise RuntimeError("Remote archive access is disabled; use build_from_rows instead")
        star_rows, planet_rows = fetch_system_rows(self.client, system_name, workers=self.config.fetch_workers)
        if self.cache is not None:
            self.cache.flush()
        return self.build_from_rows(star_rows, planet_rows)

    def build_from_rows(
        self,
        star_rows: list[dict[str, Any]],
        planet_rows: list[dict[str, Any]],
    ) -> PipelineResult:
        rejections: list[Rejection] = []
        stars = self._build_stars(reduce_records(star_rows, STAR_IDENTIFIER), rejections)
        planets = self._build_planets(reduce_records(planet_rows, PLANET_IDENTIFIER), rejections)
        planets = self._drop_orphans(stars, planets, rejections)
        logger.info(
            "Built %d stars and %d planets (%d rejections)",
            len(stars),
            len(planets),
            len(rejections),
        )
        system = assemble_system(stars, planets, config=self.imputation, collapse_single=self.config.collapse_single)
        if not system.mass_known:
            logger.warning("System mass is undefined: at least one star has no reported mass")
        return PipelineResult(system=system, rejections=rejections)

    def _build_stars(self, records: list[dict[str, Any]], rejections: list[Rejection]) -> list[Star]:
        stars: list[Star] = []
        for record in records:
            try:
                stars.append(make_star(record))
            except MalformedRecordError as exc:
                self._reject(rejections, exc.stage, None, str(exc))
        return stars

    def _build_planets(self, records: list[dict[str, Any]], rejections: list[Rejection]) -> list[Planet]:
        planets: list[Planet] = []
        for record in records:
            try:
                planets.append(make_planet(record, self.imputation))
            except MalformedRecordError as exc:
                self._reject(rejections, exc.stage, None, str(exc))
            except ImputationExhaustedError as exc:
                self._reject(rejections, "body_factory", exc.planet.name, str(exc))
                planets.append(exc.planet)
        return planets

    def _drop_orphans(self, stars: list[Star], planets: list[Planet], rejections: list[Rejection]) -> list[Planet]:
        host_names = {star.host_name for star in stars}
        kept: list[Planet] = []
        for planet in planets:
            if planet.host_name in host_names:
                kept.append(planet)
            else:
                self._reject(rejections, "assembly", planet.name, f"Host {planet.host_name!r} is not in this system")
        return kept

    def _reject(self, rejections: list[Rejection], stage: str, identifier: str | None, message: str) -> None:
        logger.warning("Rejected %s at %s: %s", identifier or "<unnamed record>", stage, message)
        rejections.append(Rejection(stage=stage, identifier=identifier, message=message))
