"""
Signal data and shared state tests.
"""

import unittest

from particlemorph.signals import (
    DFLT_GESTURE_SIGNAL,
    GestureSignal,
    GestureState,
    LandmarkSample,
    LatestSample,
    Position,
    TrackingStatus,
    is_active,
)


class TestLandmarkSample(unittest.TestCase):
    def test_missing_score_is_zero(self):
        sample = LandmarkSample(points=[(0.1, 0.2, 0.0)], scores={'eyeBlinkLeft': 0.3})
        self.assertEqual(sample.score('eyeBlinkLeft'), 0.3)
        self.assertEqual(sample.score('eyeBlinkRight'), 0.0)

    def test_none_score_is_zero(self):
        sample = LandmarkSample(points=[], scores={'eyeBlinkLeft': None})
        self.assertEqual(sample.score('eyeBlinkLeft'), 0.0)

    def test_default_scores(self):
        self.assertEqual(LandmarkSample(points=[]).scores, {})


class TestGestureSignal(unittest.TestCase):
    def test_initial_value(self):
        self.assertEqual(DFLT_GESTURE_SIGNAL.tension, 0.0)
        self.assertEqual(DFLT_GESTURE_SIGNAL.position, Position(0.0, 0.0))
        self.assertFalse(DFLT_GESTURE_SIGNAL.detected)

    def test_is_active(self):
        self.assertTrue(is_active(GestureSignal(0.6, Position(), True)))
        self.assertFalse(is_active(GestureSignal(0.4, Position(), True)))
        self.assertTrue(is_active(GestureSignal(0.4, Position(), True), threshold=0.3))


class TestGestureState(unittest.TestCase):
    def test_readers_see_every_update(self):
        state = GestureState()
        seen = []
        state.add_reader(seen.append)
        first = GestureSignal(0.1, Position(0.2, 0.3), True)
        second = GestureSignal(0.4, Position(-0.2, 0.0), True)
        state.update(first)
        state.update(second)
        self.assertEqual(seen, [first, second])
        self.assertEqual(state.signal, second)
        self.assertEqual(state.frame_count, 2)

    def test_remove_reader(self):
        state = GestureState()
        seen = []
        reader = state.add_reader(seen.append)
        state.remove_reader(reader)
        state.update(GestureSignal(0.1, Position(), True))
        self.assertEqual(seen, [])

    def test_reader_removing_itself_does_not_skip_others(self):
        state = GestureState()
        seen = []

        def once(signal):
            state.remove_reader(once)

        state.add_reader(once)
        state.add_reader(seen.append)
        signal = GestureSignal(0.1, Position(), True)
        state.update(signal)
        self.assertEqual(seen, [signal])
        state.update(signal)
        self.assertEqual(seen, [signal, signal])

    def test_reset(self):
        state = GestureState()
        state.update(GestureSignal(0.9, Position(1.0, -1.0), True))
        state.reset()
        self.assertEqual(state.signal, DFLT_GESTURE_SIGNAL)
        self.assertEqual(state.frame_count, 1)

    def test_readers_see_reset(self):
        state = GestureState()
        seen = []
        state.add_reader(seen.append)
        state.update(GestureSignal(0.9, Position(1.0, -1.0), True))
        state.reset()
        self.assertEqual(seen[-1], DFLT_GESTURE_SIGNAL)
        self.assertEqual(len(seen), 2)

    def test_status(self):
        state = GestureState()
        self.assertEqual(state.status, TrackingStatus.IDLE)
        state.set_status('unavailable', 'no camera')
        self.assertIs(state.status, TrackingStatus.UNAVAILABLE)
        self.assertEqual(state.status_message, 'no camera')


class TestLatestSample(unittest.TestCase):
    def test_latest_wins(self):
        slot = LatestSample()
        for i in range(5):
            slot.put(LandmarkSample(points=[(i, i, 0)]), float(i))
        sample, timestamp = slot.take()
        self.assertEqual(timestamp, 4.0)
        self.assertEqual(sample.points, [(4, 4, 0)])
        self.assertEqual(slot.dropped, 4)
        self.assertIsNone(slot.take())

    def test_absent_sample_is_not_empty_slot(self):
        slot = LatestSample()
        self.assertFalse(slot)
        slot.put(None, 1.0)
        self.assertTrue(slot)
        self.assertEqual(slot.take(), (None, 1.0))
        self.assertFalse(slot)


if __name__ == "__main__":
    unittest.main()
