"""Landmark sources: MediaPipe face and hand landmarkers, one subject per frame.

A source is called with a BGR video frame and a timestamp (seconds) and returns
a ``LandmarkSample`` for the first detected subject, or ``None``.

The conversion from MediaPipe results to samples is done by plain functions
(``face_result_to_sample``, ``hand_result_to_sample``) that only rely on the
attributes of the results, so they can be used (and tested) without a model.
"""

import math
from pathlib import Path
from typing import Optional, Sequence

import cv2
import numpy as np

from particlemorph.signals import LandmarkSample, Point, Timestamp
from particlemorph.util import (
    FINGER_TIPS,
    Blendshape,
    HandLandmark,
    ModelLoadError,
    clip,
    data_files,
)

# Model files are not shipped: download them into particlemorph/data, or pass
# ``model_path`` explicitly.
FACE_LANDMARKER_URL = (
    'https://storage.googleapis.com/mediapipe-models/face_landmarker/'
    'face_landmarker/float16/1/face_landmarker.task'
)
HAND_LANDMARKER_URL = (
    'https://storage.googleapis.com/mediapipe-models/hand_landmarker/'
    'hand_landmarker/float16/1/hand_landmarker.task'
)
DFLT_FACE_MODEL_PATH = str(data_files / 'face_landmarker.task')
DFLT_HAND_MODEL_PATH = str(data_files / 'hand_landmarker.task')

# Mean fingertip-to-wrist distance (normalized image units)
DFLT_OPEN_HAND_DISTANCE = 0.30
DFLT_CLOSED_HAND_DISTANCE = 0.10


# -------------------------------------------------------------------------------
# Hand feature extraction helpers
# -------------------------------------------------------------------------------


def calculate_planar_distance(point1, point2):
    """Euclidean distance between two points, ignoring depth."""
    return math.hypot(point1[0] - point2[0], point1[1] - point2[1])


def hand_closure_score(
    points: Sequence[Point],
    *,
    open_distance: float = DFLT_OPEN_HAND_DISTANCE,
    closed_distance: float = DFLT_CLOSED_HAND_DISTANCE,
) -> float:
    """
    How closed the hand is, from 0 (open hand) to 1 (fist).

    Uses the mean distance from the five fingertips to the wrist: small distance
    means a closed hand.

    >>> wrist = (0.5, 0.8, 0.0)
    >>> open_hand = [wrist] + [(0.5, 0.4, 0.0)] * 20
    >>> fist = [wrist] + [(0.5, 0.75, 0.0)] * 20
    >>> hand_closure_score(open_hand), hand_closure_score(fist)
    (0.0, 1.0)
    """
    wrist = points[HandLandmark.WRIST]
    mean_distance = sum(
        calculate_planar_distance(points[tip], wrist) for tip in FINGER_TIPS
    ) / len(FINGER_TIPS)
    span = open_distance - closed_distance
    if span <= 0:
        return 1.0 if mean_distance < open_distance else 0.0
    return clip((open_distance - mean_distance) / span, 0.0, 1.0)


def _landmark_points(landmarks) -> list:
    return [(lm.x, lm.y, lm.z) for lm in landmarks]


def _category_scores(categories) -> dict:
    return {c.category_name: float(c.score) for c in categories}


# -------------------------------------------------------------------------------
# MediaPipe results to samples
# -------------------------------------------------------------------------------


def face_result_to_sample(result) -> Optional[LandmarkSample]:
    """
    Convert a ``FaceLandmarkerResult`` to a sample of its first face, if any.

    Blendshape categories become the sample's scores.
    """
    if not getattr(result, 'face_landmarks', None):
        return None
    points = _landmark_points(result.face_landmarks[0])
    blendshapes = getattr(result, 'face_blendshapes', None)
    scores = _category_scores(blendshapes[0]) if blendshapes else {}
    return LandmarkSample(points=points, scores=scores)


def hand_result_to_sample(
    result,
    *,
    open_distance: float = DFLT_OPEN_HAND_DISTANCE,
    closed_distance: float = DFLT_CLOSED_HAND_DISTANCE,
) -> Optional[LandmarkSample]:
    """
    Convert a ``HandLandmarkerResult`` to a sample of its first hand, if any.

    Hands have no blendshapes: the sample gets a ``handClosure`` score computed
    from the landmarks, and the handedness score (as ``handedness``).
    """
    if not getattr(result, 'hand_landmarks', None):
        return None
    points = _landmark_points(result.hand_landmarks[0])
    scores = {
        Blendshape.HAND_CLOSURE: hand_closure_score(
            points, open_distance=open_distance, closed_distance=closed_distance
        )
    }
    handedness = getattr(result, 'handedness', None)
    if handedness and handedness[0]:
        scores['handedness'] = float(handedness[0][0].score)
    return LandmarkSample(points=points, scores=scores)


# -------------------------------------------------------------------------------
# Landmark sources
# -------------------------------------------------------------------------------


def _check_model_path(model_path, url):
    if not Path(model_path).is_file():
        raise ModelLoadError(
            f"Model file not found: {model_path}\nDownload it from {url}"
        )
    return str(model_path)


class LandmarkSource:
    """
    Base of the MediaPipe landmark sources.

    Subclasses set ``model_url`` and implement ``_create_landmarker`` and
    ``_result_to_sample``.

    Raises:
        ModelLoadError: If the model file is missing or can't be loaded.
    """

    model_url = None

    def __init__(self, model_path):
        self.model_path = _check_model_path(model_path, self.model_url)

        import mediapipe as mp

        self.mp = mp
        try:
            self.landmarker = self._create_landmarker(mp.tasks.vision)
        except (RuntimeError, ValueError) as e:
            raise ModelLoadError(f"Could not load {self.model_path}: {e}") from e
        self._last_timestamp_ms = -1

    def _create_landmarker(self, vision):
        raise NotImplementedError

    def _result_to_sample(self, result) -> Optional[LandmarkSample]:
        raise NotImplementedError

    def _base_options(self):
        return self.mp.tasks.BaseOptions(model_asset_path=self.model_path)

    def _timestamp_ms(self, timestamp: Timestamp) -> int:
        # VIDEO mode requires strictly increasing timestamps
        timestamp_ms = max(int(timestamp * 1000), self._last_timestamp_ms + 1)
        self._last_timestamp_ms = timestamp_ms
        return timestamp_ms

    def detect(self, img, timestamp: Timestamp):
        """Run the landmarker on a BGR image and return the raw result."""
        img_rgb = cv2.cvtColor(img, cv2.COLOR_BGR2RGB)
        mp_image = self.mp.Image(
            image_format=self.mp.ImageFormat.SRGB, data=np.ascontiguousarray(img_rgb)
        )
        return self.landmarker.detect_for_video(
            mp_image, self._timestamp_ms(timestamp)
        )

    def __call__(self, img, timestamp: Timestamp) -> Optional[LandmarkSample]:
        if img is None or img.size == 0:
            return None
        return self._result_to_sample(self.detect(img, timestamp))

    def close(self):
        self.landmarker.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class FaceLandmarkSource(LandmarkSource):
    """One face, with blendshapes (blinks, gaze) as scores."""

    model_url = FACE_LANDMARKER_URL

    def __init__(self, model_path=DFLT_FACE_MODEL_PATH):
        super().__init__(model_path)

    def _create_landmarker(self, vision):
        options = vision.FaceLandmarkerOptions(
            base_options=self._base_options(),
            running_mode=vision.RunningMode.VIDEO,
            output_face_blendshapes=True,
            num_faces=1,
        )
        return vision.FaceLandmarker.create_from_options(options)

    def _result_to_sample(self, result):
        return face_result_to_sample(result)


class HandLandmarkSource(LandmarkSource):
    """One hand, with a derived ``handClosure`` score."""

    model_url = HAND_LANDMARKER_URL

    def __init__(
        self,
        model_path=DFLT_HAND_MODEL_PATH,
        *,
        detection_con=0.5,
        track_con=0.5,
        open_distance=DFLT_OPEN_HAND_DISTANCE,
        closed_distance=DFLT_CLOSED_HAND_DISTANCE,
    ):
        self.detection_con = detection_con
        self.track_con = track_con
        self.open_distance = open_distance
        self.closed_distance = closed_distance
        super().__init__(model_path)

    def _create_landmarker(self, vision):
        options = vision.HandLandmarkerOptions(
            base_options=self._base_options(),
            running_mode=vision.RunningMode.VIDEO,
            num_hands=1,
            min_hand_detection_confidence=self.detection_con,
            min_tracking_confidence=self.track_con,
        )
        return vision.HandLandmarker.create_from_options(options)

    def _result_to_sample(self, result):
        return hand_result_to_sample(
            result,
            open_distance=self.open_distance,
            closed_distance=self.closed_distance,
        )


# Landmark source factories, by tracker name (same names as normalizer_presets)
source_factories = {
    'face': FaceLandmarkSource,
    'hand': HandLandmarkSource,
}
