import unittest
import numpy as np
from config import config
from blackholes import BlackHole
from gravity import GravityField
from physics_utils import PhysicsError
from simulation import LensingSimulation, integrate_bodies, resolve_collisions, find_first_collision

DT = 1.0 / 60.0

class TestIntegrateBodies(unittest.TestCase):

    def setUp(self):
        self.field = GravityField(gravitational_constant=2.0, softening=1e-4)

    def test_velocity_updated_before_position(self):
        source = BlackHole(0.05, [0.0, 0.0], is_anchored=True)
        body = BlackHole(0.01, [0.5, 0.0])
        accel = self.field.acceleration_at(body.position, [source])
        integrate_bodies([source, body], DT, self.field)
        np.testing.assert_array_almost_equal(body.velocity, accel * DT)
        # Semi-implicit: the new velocity already moved the body
        np.testing.assert_array_almost_equal(body.position, np.array([0.5, 0.0]) + accel * DT * DT)

    def test_anchor_does_not_move(self):
        anchor = BlackHole(0.05, is_anchored=True)
        free = BlackHole(0.05, [0.3, 0.0])
        integrate_bodies([anchor, free], DT, self.field)
        np.testing.assert_array_equal(anchor.position, [0.0, 0.0])
        np.testing.assert_array_equal(anchor.velocity, [0.0, 0.0])

    def test_update_is_synchronous(self):
        a = BlackHole(0.02, [-0.2, 0.0])
        b = BlackHole(0.02, [0.2, 0.0])
        integrate_bodies([a, b], DT, self.field)
        # Mirror symmetry would break if b saw a's updated position
        np.testing.assert_array_almost_equal(a.position, -b.position)
        np.testing.assert_array_almost_equal(a.velocity, -b.velocity)

    def test_momentum_preserved_for_equal_masses_with_opposite_velocity(self):
        a = BlackHole(0.02, [-0.4, 0.1], [0.0, 0.3])
        b = BlackHole(0.02, [0.4, -0.2], [0.0, -0.3])
        before = a.mass * a.velocity + b.mass * b.velocity
        integrate_bodies([a, b], DT, self.field)
        after = a.mass * a.velocity + b.mass * b.velocity
        np.testing.assert_allclose(after, before, atol=1e-15)

    def test_zero_dt_leaves_positions(self):
        a = BlackHole(0.02, [-0.4, 0.1], [0.2, 0.3])
        integrate_bodies([BlackHole(0.06, is_anchored=True), a], 0.0, self.field)
        np.testing.assert_array_equal(a.position, [-0.4, 0.1])

class TestCollisions(unittest.TestCase):

    def test_no_collision_when_touching_exactly(self):
        bodies = [BlackHole(0.02, [0.0, 0.0]), BlackHole(0.02, [0.04, 0.0])]
        self.assertIsNone(find_first_collision(bodies))

    def test_scan_order_highest_index_first(self):
        bodies = [BlackHole(0.02, [0.0, 0.0]), BlackHole(0.02, [0.03, 0.0]),
                  BlackHole(0.02, [1.0, 0.0]), BlackHole(0.02, [1.03, 0.0])]
        self.assertEqual(find_first_collision(bodies), (2, 3))

    def test_merged_body_takes_lower_slot(self):
        far = BlackHole(0.02, [-1.0, 0.0])
        a = BlackHole(0.02, [0.5, 0.0])
        b = BlackHole(0.02, [0.53, 0.0])
        bodies = [far, a, b]
        self.assertEqual(resolve_collisions(bodies), 1)
        self.assertEqual(len(bodies), 2)
        self.assertIs(bodies[0], far)
        np.testing.assert_array_almost_equal(bodies[1].position, [0.515, 0.0])

    def test_three_overlapping_collapse_to_one(self):
        bodies = [BlackHole(0.02, [0.5, 0.0]), BlackHole(0.02, [0.52, 0.0]), BlackHole(0.02, [0.54, 0.0])]
        self.assertEqual(resolve_collisions(bodies), 2)
        self.assertEqual(len(bodies), 1)
        self.assertAlmostEqual(bodies[0].radius, np.sqrt(3) * 0.02)

    def test_chain_collision_cascades(self):
        # a and b overlap; c only overlaps the body they merge into
        a = BlackHole(0.02, [-0.015, 0.0])
        b = BlackHole(0.02, [0.015, 0.0])
        c = BlackHole(0.02, [0.0, 0.05])
        bodies = [a, b, c]
        self.assertEqual(find_first_collision(bodies), (0, 1))
        self.assertEqual(resolve_collisions(bodies), 2)
        self.assertEqual(len(bodies), 1)

    def test_anchor_stays_first_and_anchored(self):
        anchor = BlackHole(0.06, is_anchored=True)
        free = BlackHole(0.02, [0.05, 0.0], [1.0, 1.0])
        bodies = [anchor, free]
        resolve_collisions(bodies)
        self.assertEqual(len(bodies), 1)
        self.assertTrue(bodies[0].is_anchored)
        np.testing.assert_array_equal(bodies[0].position, [0.0, 0.0])

class TestLensingSimulation(unittest.TestCase):

    def setUp(self):
        self.sim = LensingSimulation()

    def test_starts_with_single_anchor(self):
        self.assertEqual(len(self.sim), 1)
        self.assertTrue(self.sim.anchor.is_anchored)
        self.assertAlmostEqual(self.sim.anchor.radius, config.Bodies.ANCHOR_RADIUS)

    def test_spawn_scales_velocity(self):
        body = self.sim.spawn([0.5, 0.5], [0.1, -0.2])
        self.assertEqual(len(self.sim), 2)
        self.assertIs(self.sim.bodies[-1], body)
        self.assertAlmostEqual(body.radius, config.Bodies.NEW_BODY_RADIUS)
        np.testing.assert_array_almost_equal(body.velocity, np.array([0.1, -0.2]) * config.Input.VELOCITY_SCALE)
        np.testing.assert_array_almost_equal(body.position, [0.5, 0.5])

    def test_spawn_rejects_non_finite_input(self):
        with self.assertRaises(PhysicsError):
            self.sim.spawn([np.nan, 0.0], [0.0, 0.0])
        with self.assertRaises(PhysicsError):
            self.sim.spawn([0.0, 0.0], [np.inf, 0.0])
        self.assertEqual(len(self.sim), 1)

    def test_spawn_cap(self):
        original_cap = config.Bodies.CAP_SPAWNS_AT_DISPLAY_LIMIT
        original_max = config.Visualization.MAX_LENSES
        try:
            config.Bodies.CAP_SPAWNS_AT_DISPLAY_LIMIT = True
            config.Visualization.MAX_LENSES = 2
            self.assertIsNotNone(self.sim.spawn([0.9, 0.9], [0.0, 0.0]))
            self.assertIsNone(self.sim.spawn([-0.9, 0.9], [0.0, 0.0]))
            self.assertEqual(len(self.sim), 2)
        finally:
            config.Bodies.CAP_SPAWNS_AT_DISPLAY_LIMIT = original_cap
            config.Visualization.MAX_LENSES = original_max

    def test_physics_not_capped_by_display_limit(self):
        for k in range(config.Visualization.MAX_LENSES + 5):
            angle = 2 * np.pi * k / (config.Visualization.MAX_LENSES + 5)
            self.sim.spawn([3.0 * np.cos(angle), 3.0 * np.sin(angle)], [0.0, 0.0])
        self.assertEqual(len(self.sim), config.Visualization.MAX_LENSES + 6)
        before = self.sim.bodies[-1].position.copy()
        self.sim.step(DT)
        # The last body still moves even though it is beyond the display limit
        self.assertGreater(np.linalg.norm(self.sim.bodies[-1].velocity), 0.0)
        self.assertFalse(np.array_equal(self.sim.bodies[-1].position, before))

    def test_snapshot_is_deep_copy(self):
        self.sim.spawn([0.5, 0.0], [0.0, 0.1])
        snapshot = self.sim.snapshot()
        snapshot[1].position += 1.0
        snapshot.append(BlackHole(0.01))
        np.testing.assert_array_almost_equal(self.sim.bodies[1].position, [0.5, 0.0])
        self.assertEqual(len(self.sim), 2)

    def test_render_data(self):
        self.sim.spawn([0.5, 0.0], [0.0, 0.0])
        data = self.sim.render_data()
        self.assertEqual(len(data), 2)
        self.assertEqual(data[0][0], (0.0, 0.0))
        self.assertAlmostEqual(data[0][1], config.Bodies.ANCHOR_RADIUS)
        self.assertAlmostEqual(data[0][2], self.sim.anchor.strength)
        projected = self.sim.render_data(lambda p: (int(p[0] * 100), int(p[1] * 100)))
        self.assertEqual(projected[1][0], (50, 0))

    def test_reset(self):
        self.sim.spawn([0.5, 0.0], [0.0, 0.0])
        self.sim.step(DT)
        self.sim.reset()
        self.assertEqual(len(self.sim), 1)
        self.assertEqual(self.sim.frame_count, 0)
        self.assertTrue(self.sim.anchor.is_anchored)

    def test_symmetric_pair_preserves_momentum(self):
        self.sim.spawn([-0.5, 0.0], [0.0, 0.1])
        self.sim.spawn([0.5, 0.0], [0.0, -0.1])
        before = self.sim.total_momentum()
        self.sim.step(DT)
        np.testing.assert_allclose(self.sim.total_momentum(), before, atol=1e-15)

    def test_falling_body_merges_into_anchor(self):
        sim = LensingSimulation(anchor_radius=0.02)
        sim.spawn([0.5, 0.0], [0.0, 0.0], radius=0.01)
        previous = np.linalg.norm(sim.bodies[1].position)
        for _ in range(10000):
            sim.step(DT)
            if len(sim) == 1:
                break
            current = np.linalg.norm(sim.bodies[1].position)
            self.assertLess(current, previous)
            previous = current
        self.assertEqual(len(sim), 1)
        self.assertTrue(sim.anchor.is_anchored)
        self.assertAlmostEqual(sim.anchor.radius, np.sqrt(0.02 ** 2 + 0.01 ** 2))
        self.assertEqual(sim.merge_count, 1)

    def test_simultaneous_spawns_cascade_in_one_frame(self):
        for x in (0.5, 0.52, 0.54):
            self.sim.spawn([x, 0.0], [0.0, 0.0])
        merges = self.sim.step(DT)
        self.assertEqual(merges, 2)
        self.assertEqual(len(self.sim), 2)
        self.assertTrue(self.sim.bodies[0].is_anchored)
        self.assertAlmostEqual(self.sim.bodies[1].radius, np.sqrt(3) * config.Bodies.NEW_BODY_RADIUS)

    def test_total_energy_drops_with_depth(self):
        self.sim.spawn([0.8, 0.0], [0.0, 0.0])
        shallow = self.sim.total_energy()
        self.sim.reset()
        self.sim.spawn([0.3, 0.0], [0.0, 0.0])
        self.assertLess(self.sim.total_energy(), shallow)

if __name__ == '__main__':
    unittest.main(argv=['first-arg-is-ignored'], exit=False)
