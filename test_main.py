import os
os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

import unittest
import numpy as np
import pygame
from config import config
from main import LensingApp

class TestLensingApp(unittest.TestCase):

    def setUp(self):
        self.app = LensingApp(headless=True)

    def tearDown(self):
        self.app.close()

    def test_clamp_dt(self):
        self.assertEqual(LensingApp.clamp_dt(-0.5), 0.0)
        self.assertEqual(LensingApp.clamp_dt(10.0), config.Physics.MAX_FRAME_DT)
        self.assertAlmostEqual(LensingApp.clamp_dt(0.01), 0.01)

    def test_drag_move_predicts_without_touching_live_state(self):
        self.app.simulation.spawn([0.5, 0.0], [0.0, 0.2])
        before = [b.position.copy() for b in self.app.simulation.bodies]
        self.app.on_drag_move(np.array([-0.5, 0.5]), np.array([0.1, 0.0]))
        self.assertGreaterEqual(len(self.app.predicted_points), 2)
        np.testing.assert_array_equal(self.app.predicted_points[0], [-0.5, 0.5])
        for body, position in zip(self.app.simulation.bodies, before):
            np.testing.assert_array_equal(body.position, position)

    def test_tiny_drag_or_cancel_clears_prediction(self):
        self.app.on_drag_move(np.array([-0.5, 0.5]), np.array([0.1, 0.0]))
        self.app.on_drag_move(np.array([-0.5, 0.5]), np.array([0.0, 0.0]))
        self.assertEqual(self.app.predicted_points, [])
        self.app.on_drag_move(np.array([-0.5, 0.5]), np.array([0.1, 0.0]))
        self.app.on_drag_move(None, None)
        self.assertEqual(self.app.predicted_points, [])

    def test_drag_release_spawns(self):
        self.app.on_drag_move(np.array([-0.5, 0.5]), np.array([0.1, 0.0]))
        self.app.on_drag_release(np.array([-0.5, 0.5]), np.array([0.1, 0.0]))
        self.assertEqual(len(self.app.simulation), 2)
        self.assertEqual(self.app.predicted_points, [])

    def test_degenerate_release_is_ignored(self):
        with self.assertLogs(level='WARNING'):
            self.app.on_drag_release(np.array([np.nan, 0.5]), np.array([0.1, 0.0]))
        self.assertEqual(len(self.app.simulation), 1)

    def test_pause_and_reset_keys(self):
        self.app.simulation.spawn([0.5, 0.0], [0.0, 0.0])
        self.app.on_key(pygame.K_SPACE)
        self.assertTrue(self.app.paused)
        before = self.app.simulation.bodies[1].position.copy()
        self.assertEqual(self.app.advance(1.0 / 60.0), 0)
        np.testing.assert_array_equal(self.app.simulation.bodies[1].position, before)
        self.app.on_key(pygame.K_SPACE)
        self.assertFalse(self.app.paused)
        self.app.advance(1.0 / 60.0)
        self.assertFalse(np.array_equal(self.app.simulation.bodies[1].position, before))
        self.app.on_key(pygame.K_r)
        self.assertEqual(len(self.app.simulation), 1)

    def test_run_fixed_number_of_frames(self):
        self.app.simulation.spawn([0.5, 0.0], [0.0, 0.3])
        self.assertEqual(self.app.run(max_frames=3), 3)
        self.assertEqual(self.app.simulation.frame_count, 3)

if __name__ == '__main__':
    unittest.main(argv=['first-arg-is-ignored'], exit=False)
