"""
Preview drawing tests, on blank images.
"""

import unittest

import numpy as np

from particlemorph.display import (
    ACTIVE_CURSOR_COLOR,
    LOST_CURSOR_COLOR,
    draw_anchor_lines,
    draw_cursor,
    draw_on_screen,
    signal_features,
    signal_to_pixel,
)
from particlemorph.signals import GestureSignal, GestureState, Position


def blank_image():
    return np.zeros((480, 640, 3), np.uint8)


class TestSignalToPixel(unittest.TestCase):
    def test_corners(self):
        shape = (480, 640, 3)
        self.assertEqual(signal_to_pixel((-1.0, 1.0), shape), (0, 0))
        self.assertEqual(signal_to_pixel((1.0, -1.0), shape), (640, 480))
        self.assertEqual(signal_to_pixel(Position(0.5, 0.0), shape), (480, 240))


class TestSignalFeatures(unittest.TestCase):
    def test_features(self):
        signal = GestureSignal(0.75, Position(0.25, -0.5), True)
        features = signal_features(signal)
        self.assertEqual(
            features,
            {'tension': 0.75, 'x': 0.25, 'y': -0.5, 'detected': True, 'active': True},
        )

    def test_with_status(self):
        features = signal_features(GestureSignal(), GestureState())
        self.assertEqual(features['status'], 'idle')
        self.assertFalse(features['active'])


class TestDrawing(unittest.TestCase):
    def test_cursor_color_follows_mode(self):
        img = draw_cursor(blank_image(), GestureSignal(0.9, Position(), True))
        self.assertEqual(tuple(img[240, 320]), ACTIVE_CURSOR_COLOR)
        img = draw_cursor(blank_image(), GestureSignal())
        self.assertEqual(tuple(img[240, 320]), LOST_CURSOR_COLOR)

    def test_anchor_lines_are_mirrored(self):
        # rows above the horizontal line (at y = 240)
        img = draw_anchor_lines(blank_image(), (0.25, 0.5))
        self.assertTrue(img[:200, 480].any())
        self.assertFalse(img[:200, 160].any())
        img = draw_anchor_lines(blank_image(), (0.25, 0.5), mirrored=False)
        self.assertTrue(img[:200, 160].any())
        self.assertTrue(img[240, :].any())

    def test_no_anchor_draws_nothing(self):
        self.assertFalse(draw_anchor_lines(blank_image(), None).any())

    def test_draw_on_screen(self):
        img = draw_on_screen(
            blank_image(),
            GestureSignal(0.2, Position(0.5, 0.5), True),
            state=GestureState(),
            anchor=(0.5, 0.5),
        )
        self.assertEqual(img.shape, (480, 640, 3))
        self.assertTrue(img.any())

    def test_draw_on_screen_without_features(self):
        img = draw_on_screen(
            blank_image(), GestureSignal(), draw_signal_features=None
        )
        # only the cursor: nothing in the top-left panel area
        self.assertFalse(img[:100, :100].any())


if __name__ == "__main__":
    unittest.main()
