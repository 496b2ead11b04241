import math
import unittest
from dataclasses import replace

from exosystem.assembly import PlanetarySystem, assemble_system, build_system
from exosystem.bodies import ImputationConfig, Planet, Star
from exosystem.errors import DegenerateSystemError
from exosystem.orbits import orbital_period_days


def _star(host: str, mass: float | None = 1.0) -> Star:
    return Star(system_name="S", host_name=host, stellar_mass=mass)


def _planet(name: str, host: str, binary: int = 0, period: float | None = 10.0, axis: float | None = 0.09) -> Planet:
    return Planet(name=name, host_name=host, orbit_binary=binary, orbital_period=period, semi_major_axis=axis)


def _expected_mass(system: PlanetarySystem) -> float:
    return sum(star.stellar_mass for star in system.stars) + sum(
        _expected_mass(child) for child in system.sub_systems
    )


class AssembleScenarioTests(unittest.TestCase):
    def test_single_star_with_two_planets_wrapped_by_default(self) -> None:
        star = _star("X", 1.0)
        planets = [_planet("X b", "X"), _planet("X c", "X")]

        system = assemble_system([star], planets)

        self.assertEqual(system.stars, ())
        self.assertEqual(system.planets, ())
        self.assertEqual(len(system.sub_systems), 1)
        child = system.sub_systems[0]
        self.assertEqual(child.stars, (star,))
        self.assertEqual([planet.name for planet in child.planets], ["X b", "X c"])
        self.assertEqual(system.total_star_mass, 1.0)

    def test_single_star_with_two_planets_collapsed_on_request(self) -> None:
        star = _star("X", 1.0)
        system = assemble_system([star], [_planet("X b", "X"), _planet("X c", "X")], collapse_single=True)

        self.assertEqual(system.stars, (star,))
        self.assertEqual(len(system.planets), 2)
        self.assertEqual(system.sub_systems, ())
        self.assertEqual(system.total_star_mass, 1.0)

    def test_binary_with_circumbinary_planet(self) -> None:
        stars = [_star("A", 0.5), _star("B", 0.5)]
        planet = _planet("AB b", "A", binary=1)

        system = assemble_system(stars, [planet])

        self.assertEqual(system.stars, tuple(stars))
        self.assertEqual([p.name for p in system.planets], ["AB b"])
        self.assertEqual(system.sub_systems, ())
        self.assertEqual(system.total_star_mass, 1.0)

    def test_lone_star_alone_is_kept(self) -> None:
        system = assemble_system([_star("A", 0.8)], [])
        self.assertEqual(len(system.stars), 1)
        self.assertEqual(system.total_star_mass, 0.8)


class AssembleInvariantTests(unittest.TestCase):
    def setUp(self) -> None:
        self.stars = [_star("A", 1.0), _star("B", 0.5), _star("C", 0.25)]
        self.planets = [
            _planet("A b", "A"),
            _planet("A c", "A"),
            _planet("B b", "B"),
            _planet("AB b", "A", binary=1),
            _planet("AB c", "B", binary=1),
        ]
        self.system = assemble_system(self.stars, self.planets)

    def test_tree_shape(self) -> None:
        self.assertEqual([star.host_name for star in self.system.stars], ["C"])
        self.assertEqual([planet.name for planet in self.system.planets], ["AB b", "AB c"])
        self.assertEqual(
            [[star.host_name for star in child.stars] for child in self.system.sub_systems],
            [["A"], ["B"]],
        )

    def test_mass_is_conserved_at_every_node(self) -> None:
        for node in self.system.iter_nodes():
            self.assertEqual(node.total_star_mass, _expected_mass(node))
        self.assertEqual(self.system.total_star_mass, 1.75)

    def test_every_planet_appears_exactly_once(self) -> None:
        names = [planet.name for planet in self.system.iter_planets()]
        self.assertEqual(sorted(names), sorted(planet.name for planet in self.planets))
        self.assertEqual(len(names), len(set(names)))

    def test_every_star_appears_exactly_once(self) -> None:
        hosts = [star.host_name for star in self.system.iter_stars()]
        self.assertEqual(sorted(hosts), ["A", "B", "C"])

    def test_total_is_fixed_at_construction(self) -> None:
        # Copies do not recompute the total; it goes stale on purpose.
        emptied = replace(self.system, stars=())
        self.assertEqual(emptied.total_star_mass, 1.75)
        self.assertNotEqual(emptied.total_star_mass, _expected_mass(emptied))


class AssembleFixupTests(unittest.TestCase):
    def test_fixup_uses_mass_of_enclosing_node(self) -> None:
        stars = [_star("A", 1.0), _star("B", 1.0)]
        planets = [
            _planet("A b", "A", period=None, axis=1.0),
            _planet("AB b", "A", binary=1, period=None, axis=1.0),
        ]
        system = assemble_system(stars, planets)

        inner = system.find_planet("A b")
        outer = system.find_planet("AB b")
        self.assertAlmostEqual(inner.orbital_period, orbital_period_days(1.0, 1.0))
        self.assertAlmostEqual(outer.orbital_period, orbital_period_days(1.0, 2.0))
        self.assertEqual(inner.assumptions, ("Missing orbital period",))
        self.assertEqual(outer.assumptions, ("Missing orbital period",))

    def test_fixup_not_repeated_for_descendants(self) -> None:
        stars = [_star("A", 1.0), _star("B", 1.0)]
        planets = [_planet("A b", "A", period=None, axis=0.5), _planet("B b", "B", period=None, axis=0.5)]
        system = assemble_system(stars, planets)

        for planet in system.iter_planets():
            self.assertEqual(len(planet.assumptions), 1)

    def test_star_without_mass_fails_when_kepler_needs_it(self) -> None:
        with self.assertRaises(DegenerateSystemError):
            assemble_system([_star("A", None)], [_planet("A b", "A", period=None, axis=0.5)])

    def test_star_without_mass_gives_undefined_total(self) -> None:
        system = assemble_system([_star("A", None)], [_planet("A b", "A")])
        self.assertTrue(math.isnan(system.total_star_mass))
        self.assertFalse(system.mass_known)

    def test_orbit_of_reads_node_mass(self) -> None:
        system = assemble_system([_star("A", 1.0)], [_planet("A b", "A", axis=0.3)])
        shape = system.orbit_of("A b")
        self.assertEqual(shape.semi_major_axis, 0.3)
        self.assertIsNone(system.orbit_of("missing"))

    def test_build_system_sums_children(self) -> None:
        config = ImputationConfig(seed=0)
        child = build_system([_star("A", 0.7)], [_planet("A b", "A")], config=config)
        parent = build_system([_star("B", 0.3)], [], [child], config=config)
        self.assertAlmostEqual(parent.total_star_mass, 1.0)


class AssembleErrorTests(unittest.TestCase):
    def test_empty_input_is_degenerate(self) -> None:
        with self.assertRaises(DegenerateSystemError):
            assemble_system([], [])

    def test_orphan_planet_is_degenerate(self) -> None:
        with self.assertRaises(DegenerateSystemError):
            assemble_system([_star("A")], [_planet("Z b", "Z")])

    def test_duplicate_hosts_are_degenerate(self) -> None:
        with self.assertRaises(DegenerateSystemError):
            assemble_system([_star("A"), _star("A")], [_planet("A b", "A")])


if __name__ == "__main__":
    unittest.main()
