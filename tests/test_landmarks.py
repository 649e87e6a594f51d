"""
Landmark source tests.

MediaPipe results are stood in for by simple namespaces with the same
attributes, so no model (or camera) is needed.
"""

import os
import tempfile
import unittest
from types import SimpleNamespace

from particlemorph.landmarks import (
    FaceLandmarkSource,
    HandLandmarkSource,
    face_result_to_sample,
    hand_closure_score,
    hand_result_to_sample,
    source_factories,
)
from particlemorph.util import HandLandmark, ModelLoadError


def landmark(x, y, z=0.0):
    return SimpleNamespace(x=x, y=y, z=z)


def category(name, score):
    return SimpleNamespace(category_name=name, score=score)


def hand_points(tip_distance, wrist=(0.5, 0.9)):
    """21 hand points with all fingertips ``tip_distance`` above the wrist."""
    points = [(wrist[0], wrist[1] - 0.05, 0.0)] * 21
    points[HandLandmark.WRIST] = (wrist[0], wrist[1], 0.0)
    for tip in (4, 8, 12, 16, 20):
        points[tip] = (wrist[0], wrist[1] - tip_distance, 0.0)
    return points


class TestHandClosure(unittest.TestCase):
    def test_open_hand(self):
        self.assertEqual(hand_closure_score(hand_points(0.35)), 0.0)

    def test_fist(self):
        self.assertEqual(hand_closure_score(hand_points(0.08)), 1.0)

    def test_halfway(self):
        self.assertAlmostEqual(hand_closure_score(hand_points(0.2)), 0.5)

    def test_closing_the_hand_increases_closure(self):
        distances = [0.4 - i * 0.01 for i in range(35)]
        scores = [hand_closure_score(hand_points(d)) for d in distances]
        self.assertEqual(scores, sorted(scores))

    def test_zero_width_range(self):
        points = hand_points(0.2)
        score = hand_closure_score(points, open_distance=0.25, closed_distance=0.25)
        self.assertEqual(score, 1.0)


class TestFaceResultToSample(unittest.TestCase):
    def test_no_face(self):
        self.assertIsNone(face_result_to_sample(SimpleNamespace(face_landmarks=[])))

    def test_first_face(self):
        result = SimpleNamespace(
            face_landmarks=[
                [landmark(0.1, 0.2), landmark(0.4, 0.6, -0.1)],
                [landmark(0.9, 0.9)],
            ],
            face_blendshapes=[
                [category('eyeBlinkLeft', 0.3), category('eyeBlinkRight', 0.5)]
            ],
        )
        sample = face_result_to_sample(result)
        self.assertEqual(sample.points, [(0.1, 0.2, 0.0), (0.4, 0.6, -0.1)])
        self.assertEqual(sample.scores, {'eyeBlinkLeft': 0.3, 'eyeBlinkRight': 0.5})

    def test_no_blendshapes(self):
        result = SimpleNamespace(face_landmarks=[[landmark(0.5, 0.5)]])
        self.assertEqual(face_result_to_sample(result).scores, {})


class TestHandResultToSample(unittest.TestCase):
    def test_no_hand(self):
        self.assertIsNone(hand_result_to_sample(SimpleNamespace(hand_landmarks=[])))

    def test_first_hand(self):
        points = hand_points(0.08)
        result = SimpleNamespace(
            hand_landmarks=[[landmark(*p) for p in points]],
            handedness=[[category('Left', 0.97)]],
        )
        sample = hand_result_to_sample(result)
        self.assertEqual(len(sample.points), 21)
        self.assertEqual(sample.score('handClosure'), 1.0)
        self.assertEqual(sample.score('handedness'), 0.97)


class TestSources(unittest.TestCase):
    def test_factories(self):
        self.assertIs(source_factories['face'], FaceLandmarkSource)
        self.assertIs(source_factories['hand'], HandLandmarkSource)

    def test_missing_model(self):
        with tempfile.TemporaryDirectory() as d:
            missing = os.path.join(d, 'nope.task')
            for factory in (FaceLandmarkSource, HandLandmarkSource):
                with self.subTest(factory=factory.__name__):
                    with self.assertRaises(ModelLoadError) as cm:
                        factory(missing)
                    self.assertIn(factory.model_url, str(cm.exception))


if __name__ == "__main__":
    unittest.main()
