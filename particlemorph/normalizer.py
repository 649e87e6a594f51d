"""Turning per-frame landmark samples into a stable gesture signal.

The normalizer is called once per frame with the latest ``LandmarkSample`` (or
``None`` when nobody is in view) and returns a ``GestureSignal``:

* ``tension``: the average of a few named scores (blinks, hand closure), pushed
  through a dead-zone remap so sensor baseline noise reads as 0.
* ``position``: offset of an anchor landmark (nose tip, palm center) from the
  center of the frame, mirrored, scaled and clamped to [-1, 1].
* ``detected``: only true once the subject has been continuously present for
  ``activation_delay`` seconds, so one-frame spurious detections don't flicker.

>>> normalizer = SignalNormalizer(preset='face', gaze_gain=0)
>>> sample = LandmarkSample(
...     points=[(0.5, 0.5, 0.0), (0.0, 0.5, 0.0)],
...     scores={'eyeBlinkLeft': 0.4, 'eyeBlinkRight': 0.4},
... )
>>> normalizer.process(sample, now=0.0).detected  # not yet: activation delay
False
>>> signal = normalizer.process(sample, now=0.5)
>>> signal.detected, round(signal.tension, 3), round(signal.position.x, 3)
(True, 0.525, 0.9)
>>> normalizer.process(None, now=0.6)
GestureSignal(tension=0.0, position=Position(x=0.0, y=0.0), detected=False)
"""

import math
from functools import partial
from typing import Callable, Dict, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from particlemorph.signals import (
    DFLT_GESTURE_SIGNAL,
    GestureSignal,
    LandmarkSample,
    Position,
    Timestamp,
)
from particlemorph.util import (
    Blendshape,
    FaceLandmark,
    HandLandmark,
    clip,
    resolve_object,
)

Range = Tuple[float, float]
ViewportSize = Tuple[float, float]  # (width, height)

# -------------------------------------------------------------------------------
# Defaults
# -------------------------------------------------------------------------------

DFLT_ACTIVATION_DELAY = 0.5  # seconds
# Raw blink average: ignore below 0.05 (micro-jitters), saturate around 0.7
# (fully closed eyes rarely reach 1.0 on consumer webcams)
DFLT_LOW_THRESHOLD = 0.05
DFLT_GAIN = 1.5
DFLT_SENSITIVITY = 1.8
DFLT_GAZE_GAIN = 1.0
DFLT_PORTRAIT_BOOST = 1.2
DFLT_TENSION_POLICY = 'continuous'
DFLT_LOSS_POLICY = 'snap'
DFLT_SMOOTHING = 0.0

DFLT_TENSION_SCORES = (Blendshape.EYE_BLINK_LEFT, Blendshape.EYE_BLINK_RIGHT)
DFLT_ANCHOR_INDICES = (FaceLandmark.NOSE_TIP,)


# -------------------------------------------------------------------------------
# Tension
# -------------------------------------------------------------------------------


def gain_from_range(value_range: Range) -> Tuple[float, float]:
    """
    Get the ``(low_threshold, gain)`` that maps ``value_range`` onto [0, 1].

    A zero-width (or inverted) range gives an infinite gain, which the remap
    treats as a hard step at ``low_threshold``.

    >>> gain_from_range((0.25, 0.75))
    (0.25, 2.0)
    >>> gain_from_range((0.3, 0.3))
    (0.3, inf)
    """
    low, saturation = value_range
    span = saturation - low
    if span <= 0:
        return low, math.inf
    return low, 1 / span


class DeadZoneRemap:
    """
    A callable that maps a raw score to [0, 1], discarding values under a
    threshold and rescaling what's above it.

    >>> remap = DeadZoneRemap(0.25, 2.0)
    >>> remap(0.25)
    0.0
    >>> remap(0.5)
    0.5
    >>> remap(0.9)
    1.0
    >>> step = DeadZoneRemap(0.3, math.inf)
    >>> step(0.3), step(0.31)
    (0.0, 1.0)
    """

    def __init__(self, low_threshold: float, gain: float):
        if gain < 0:
            raise ValueError(f"gain must be non-negative, was {gain}")
        self.low_threshold = low_threshold
        self.gain = gain
        # raw value from which the output is 1 (never, for a zero gain)
        self.saturation = low_threshold + 1 / gain if gain > 0 else math.inf

    def __call__(self, value: float) -> float:
        excess = value - self.low_threshold
        if not excess > 0:  # also catches nan
            return 0.0
        if value >= self.saturation:
            return 1.0
        return clip(excess * self.gain, 0.0, 1.0)

    def __repr__(self):
        return f"{type(self).__name__}({self.low_threshold!r}, {self.gain!r})"


def continuous_tension(score: float, *, low_threshold: float, gain: float) -> float:
    """Linear remap with dead zone: smooth, proportional actuation."""
    return DeadZoneRemap(low_threshold, gain)(score)


def binary_tension(score: float, *, low_threshold: float, gain: float = None) -> float:
    """Hard threshold: snappier but discontinuous (only 0 or 1).

    >>> binary_tension(0.05, low_threshold=0.05), binary_tension(0.06, low_threshold=0.05)
    (0.0, 1.0)
    """
    return 1.0 if score > low_threshold else 0.0


tension_policies = {
    'continuous': continuous_tension,
    'binary': binary_tension,
}

resolve_tension_policy = partial(resolve_object, object_map=tension_policies)


def mean_score(sample: LandmarkSample, names: Sequence[str]) -> float:
    """Average of the named scores of ``sample`` (missing ones count as 0)."""
    return sum(sample.score(name) for name in names) / len(names)


# -------------------------------------------------------------------------------
# Position
# -------------------------------------------------------------------------------


def anchor_point(points, indices: Sequence[int]) -> Optional[Tuple[float, float]]:
    """
    The (x, y) mean of the ``points`` at ``indices``, or ``None`` if any is missing.

    >>> anchor_point([(0.25, 0.5, 0), (0.75, 1.0, 0)], (0, 1))
    (0.5, 0.75)
    >>> anchor_point([(0.2, 0.4, 0)], (0, 9)) is None
    True
    """
    n_points = len(points)
    if any(not (0 <= i < n_points) for i in indices):
        return None
    xy = np.array([points[i][:2] for i in indices], dtype=float)
    x, y = xy.mean(axis=0)
    return float(x), float(y)


def gaze_offset(sample: LandmarkSample) -> Tuple[float, float]:
    """
    Net gaze direction from the eye-look blendshapes, each axis roughly in [-2, 2].

    Looking "out" with the left eye and "in" with the right eye both mean
    looking left, etc. Positive x is right, positive y is up.
    """
    s = sample.score
    look_left = s(Blendshape.EYE_LOOK_OUT_LEFT) + s(Blendshape.EYE_LOOK_IN_RIGHT)
    look_right = s(Blendshape.EYE_LOOK_IN_LEFT) + s(Blendshape.EYE_LOOK_OUT_RIGHT)
    look_up = s(Blendshape.EYE_LOOK_UP_LEFT) + s(Blendshape.EYE_LOOK_UP_RIGHT)
    look_down = s(Blendshape.EYE_LOOK_DOWN_LEFT) + s(Blendshape.EYE_LOOK_DOWN_RIGHT)
    return look_right - look_left, look_up - look_down


def aspect_correction(
    viewport_size: Optional[ViewportSize], portrait_boost: Optional[float]
) -> float:
    """
    Multiplier for x so that a portrait (taller than wide) viewport's edges stay
    reachable.

    >>> aspect_correction((400, 800), 1.2)
    2.4
    >>> aspect_correction((800, 400), 1.2)
    1.0
    >>> aspect_correction((400, 800), None), aspect_correction(None, 1.2)
    (1.0, 1.0)
    """
    if not viewport_size or portrait_boost is None:
        return 1.0
    width, height = viewport_size
    if 0 < width < height:
        return (height / width) * portrait_boost
    return 1.0


# -------------------------------------------------------------------------------
# Signal on loss
# -------------------------------------------------------------------------------


def snap_to_center(previous: GestureSignal) -> GestureSignal:
    """Back to the neutral signal: cursors recenter, nothing stays "active"."""
    return DFLT_GESTURE_SIGNAL


def hold_last(previous: GestureSignal) -> GestureSignal:
    """Keep the last tension and position, only drop ``detected``."""
    return previous._replace(detected=False)


loss_policies = {
    'snap': snap_to_center,
    'hold': hold_last,
}

resolve_loss_policy = partial(resolve_object, object_map=loss_policies)


# -------------------------------------------------------------------------------
# Configuration
# -------------------------------------------------------------------------------


class NormalizerConfig(NamedTuple):
    """The named, overridable constants of the normalization.

    Attributes:
        activation_delay: Seconds of continuous presence before ``detected``.
        tension_scores: Names of the scores averaged into raw tension.
        tension_policy: Name (or function) mapping raw tension to [0, 1].
        low_threshold: Raw tension at or under which tension is 0.
        gain: Scale applied to raw tension above ``low_threshold``.
        anchor_indices: Landmarks whose mean is the tracked position.
        sensitivity: Scale from anchor offset to position.
        axis_signs: Per-axis sign applied to the position (mirroring).
        gaze_gain: Weight of the gaze offset added to position (0 disables).
        portrait_boost: Extra x scaling on portrait viewports (None disables).
        loss_policy: Name (or function) giving the signal when tracking is lost.
        smoothing: Exponential smoothing factor in [0, 1) (0 disables).
    """

    activation_delay: float = DFLT_ACTIVATION_DELAY
    tension_scores: Tuple[str, ...] = DFLT_TENSION_SCORES
    tension_policy: str = DFLT_TENSION_POLICY
    low_threshold: float = DFLT_LOW_THRESHOLD
    gain: float = DFLT_GAIN
    anchor_indices: Tuple[int, ...] = DFLT_ANCHOR_INDICES
    sensitivity: float = DFLT_SENSITIVITY
    axis_signs: Tuple[float, float] = (1.0, 1.0)
    gaze_gain: float = DFLT_GAZE_GAIN
    portrait_boost: Optional[float] = DFLT_PORTRAIT_BOOST
    loss_policy: str = DFLT_LOSS_POLICY
    smoothing: float = DFLT_SMOOTHING


normalizer_presets: Dict[str, NormalizerConfig] = {
    # Eye tracking: blinking/squinting is tension, nose tip (+ gaze) is position
    'face': NormalizerConfig(),
    # Hand tracking: closing the fist is tension, palm center is position.
    # Hand closure is already scaled to [0, 1] by the landmark source.
    'hand': NormalizerConfig(
        tension_scores=(Blendshape.HAND_CLOSURE,),
        low_threshold=0.0,
        gain=1.0,
        anchor_indices=(HandLandmark.WRIST, HandLandmark.MIDDLE_FINGER_MCP),
        sensitivity=2.0,
        axis_signs=(1.0, -1.0),
        gaze_gain=0.0,
        portrait_boost=None,
    ),
}

resolve_preset = partial(
    resolve_object, object_map=normalizer_presets, expected_type=NormalizerConfig
)


def validate_config(config: NormalizerConfig) -> NormalizerConfig:
    """Raise ``ValueError`` if ``config`` can't be used, return it otherwise."""
    if config.activation_delay < 0:
        raise ValueError(
            f"activation_delay must be non-negative, was {config.activation_delay}"
        )
    if config.gain < 0:
        raise ValueError(f"gain must be non-negative, was {config.gain}")
    if not 0 <= config.smoothing < 1:
        raise ValueError(f"smoothing must be in [0, 1), was {config.smoothing}")
    if not config.tension_scores:
        raise ValueError("tension_scores can't be empty")
    if not config.anchor_indices:
        raise ValueError("anchor_indices can't be empty")
    if len(config.axis_signs) != 2:
        raise ValueError(f"axis_signs must have two values, was {config.axis_signs}")
    resolve_tension_policy(config.tension_policy)
    resolve_loss_policy(config.loss_policy)
    return config


def make_config(
    preset='face', *, input_range: Optional[Range] = None, **overrides
) -> NormalizerConfig:
    """
    Make a ``NormalizerConfig`` from a preset (name or config) and overrides.

    Args:
        preset: A key of ``normalizer_presets`` or a ``NormalizerConfig``.
        input_range: If given, ``(low, saturation)`` raw tension range that will
            be mapped to [0, 1]. Overrides ``low_threshold`` and ``gain``.
        overrides: Any ``NormalizerConfig`` field.

    >>> make_config('hand').gain
    1.0
    >>> make_config(input_range=(0.25, 0.75)).gain
    2.0
    >>> make_config(sensitivity=3.0).sensitivity
    3.0
    >>> make_config(smoothing=1.0)
    Traceback (most recent call last):
      ...
    ValueError: smoothing must be in [0, 1), was 1.0
    """
    config = resolve_preset(preset)
    unknown = set(overrides) - set(NormalizerConfig._fields)
    if unknown:
        raise ValueError(f"Unknown normalizer settings: {', '.join(sorted(unknown))}")
    if input_range is not None:
        overrides['low_threshold'], overrides['gain'] = gain_from_range(input_range)
    for name in ('tension_scores', 'anchor_indices', 'axis_signs'):
        if name in overrides:
            overrides[name] = tuple(overrides[name])
    return validate_config(config._replace(**overrides))


# -------------------------------------------------------------------------------
# Normalizer
# -------------------------------------------------------------------------------


class DetectionState:
    """What the normalizer remembers between frames."""

    def __init__(self):
        self.first_seen_at: Optional[Timestamp] = None
        self.smoothed: Optional[GestureSignal] = None

    def clear(self):
        self.first_seen_at = None
        self.smoothed = None

    def elapsed(self, now: Timestamp) -> float:
        if self.first_seen_at is None:
            return 0.0
        return now - self.first_seen_at

    def __repr__(self):
        return f"{type(self).__name__}(first_seen_at={self.first_seen_at!r})"


def _smooth(previous: float, target: float, smoothing: float) -> float:
    return smoothing * previous + (1 - smoothing) * target


class SignalNormalizer:
    """
    Makes a bounded, debounced ``GestureSignal`` out of each frame's sample.

    Args:
        config: A ``NormalizerConfig`` or the name of a preset.
        viewport_size: ``(width, height)`` of the viewing surface, used for the
            portrait aspect correction. Can be changed later.
        config_overrides: ``NormalizerConfig`` fields overriding ``config``'s.
    """

    def __init__(
        self,
        config=None,
        *,
        preset='face',
        viewport_size: Optional[ViewportSize] = None,
        **config_overrides,
    ):
        self.config = make_config(config or preset, **config_overrides)
        self.viewport_size = viewport_size
        self._tension = partial(
            resolve_tension_policy(self.config.tension_policy),
            low_threshold=self.config.low_threshold,
            gain=self.config.gain,
        )
        self._on_loss: Callable[[GestureSignal], GestureSignal] = resolve_loss_policy(
            self.config.loss_policy
        )
        self.state = DetectionState()
        self.signal = DFLT_GESTURE_SIGNAL

    def process(
        self, sample: Optional[LandmarkSample], now: Timestamp
    ) -> GestureSignal:
        """
        Update with the sample of the current frame and return the new signal.

        Args:
            sample: The frame's landmark sample, or ``None`` if no subject.
            now: The frame's timestamp, in seconds.
        """
        anchor = None
        if sample is not None and sample.points:
            anchor = anchor_point(sample.points, self.config.anchor_indices)
        if anchor is None:
            return self._lose()

        if self.state.first_seen_at is None:
            self.state.first_seen_at = now
        if self.state.elapsed(now) < self.config.activation_delay:
            return self.signal

        signal = GestureSignal(
            tension=self.tension(sample),
            position=self.position(sample, anchor),
            detected=True,
        )
        if self.config.smoothing and self.state.smoothed is not None:
            signal = self._smoothed(self.state.smoothed, signal)
        self.state.smoothed = signal
        self.signal = signal
        return signal

    def tension(self, sample: LandmarkSample) -> float:
        raw = mean_score(sample, self.config.tension_scores)
        return clip(self._tension(raw), 0.0, 1.0)

    def position(self, sample: LandmarkSample, anchor=None) -> Position:
        config = self.config
        if anchor is None:
            anchor = anchor_point(sample.points, config.anchor_indices)
            if anchor is None:
                return Position()
        x_sign, y_sign = config.axis_signs
        x = (0.5 - anchor[0]) * config.sensitivity * x_sign
        y = (0.5 - anchor[1]) * config.sensitivity * y_sign
        if config.gaze_gain:
            gaze_x, gaze_y = gaze_offset(sample)
            x += gaze_x * config.gaze_gain
            y += gaze_y * config.gaze_gain
        x *= aspect_correction(self.viewport_size, config.portrait_boost)
        return Position(clip(x, -1.0, 1.0), clip(y, -1.0, 1.0))

    def reset(self):
        """Forget everything (e.g. the camera was stopped)."""
        self.state.clear()
        self.signal = DFLT_GESTURE_SIGNAL

    def _lose(self) -> GestureSignal:
        self.state.clear()
        self.signal = self._on_loss(self.signal)
        return self.signal

    def _smoothed(self, previous: GestureSignal, target: GestureSignal):
        s = self.config.smoothing
        return target._replace(
            tension=_smooth(previous.tension, target.tension, s),
            position=Position(
                _smooth(previous.position.x, target.position.x, s),
                _smooth(previous.position.y, target.position.y, s),
            ),
        )

    def __repr__(self):
        return f"{type(self).__name__}({self.config!r})"
