"""Data carried between the landmark source, the normalizer and its readers.

A ``LandmarkSample`` is what the vision model saw in one frame. A
``GestureSignal`` is what the normalizer made of it: the only thing consumers
(renderers, games, panels) ever read. ``GestureState`` owns the current signal
and is handed to consumers explicitly; nothing here is a module-level global.

>>> state = GestureState()
>>> state.signal
GestureSignal(tension=0.0, position=Position(x=0.0, y=0.0), detected=False)
>>> state.update(GestureSignal(0.5, Position(0.1, -0.2), True))
>>> state.signal.detected, state.frame_count
(True, 1)
>>> state.reset()
>>> state.signal == DFLT_GESTURE_SIGNAL
True
"""

from enum import Enum
from typing import Callable, List, Mapping, NamedTuple, Optional, Sequence, Tuple

Point = Tuple[float, float, float]
Timestamp = float  # seconds


# -------------------------------------------------------------------------------
# Types
# -------------------------------------------------------------------------------


class LandmarkSample(NamedTuple):
    """One subject's landmarks and classifier scores for one frame.

    ``points`` are ``(x, y, z)`` with x and y normalized to [0, 1] in image
    coordinates. ``scores`` maps classifier names (blendshapes) to [0, 1].
    """

    points: Sequence[Point]
    scores: Mapping[str, float] = {}

    def score(self, name: str) -> float:
        """The named score, or 0 if the detector didn't report it."""
        return float(self.scores.get(name, 0.0) or 0.0)


class Position(NamedTuple):
    x: float = 0.0
    y: float = 0.0


class GestureSignal(NamedTuple):
    """The normalized control signal.

    Attributes:
        tension: Gesture closedness/intensity, in [0, 1].
        position: Offset from the center of the frame, each axis in [-1, 1].
        detected: Whether a subject has been stably detected.
    """

    tension: float = 0.0
    position: Position = Position()
    detected: bool = False


DFLT_GESTURE_SIGNAL = GestureSignal()


class TrackingStatus(str, Enum):
    IDLE = 'idle'
    STARTING = 'starting'
    ACTIVE = 'active'
    UNAVAILABLE = 'unavailable'
    STOPPED = 'stopped'


def is_active(signal: GestureSignal, threshold: float = 0.5) -> bool:
    """Whether the signal is in "active" (closed fist, squint) mode.

    >>> is_active(GestureSignal(tension=0.7, detected=True))
    True
    >>> is_active(GestureSignal(tension=0.5, detected=True))
    False
    >>> is_active(GestureSignal(tension=0.9, detected=False))
    False
    """
    return signal.detected and signal.tension > threshold


# -------------------------------------------------------------------------------
# Shared state
# -------------------------------------------------------------------------------

SignalReader = Callable[[GestureSignal], None]


class GestureState:
    """Holder of the current ``GestureSignal`` and tracking status.

    There is exactly one writer (the session that owns this object, calling
    ``update`` once per frame) and any number of readers. Signals are immutable
    tuples swapped in a single assignment, so readers never see a partial
    write.
    """

    def __init__(self, signal: GestureSignal = DFLT_GESTURE_SIGNAL):
        self._initial = signal
        self.signal = signal
        self.status = TrackingStatus.IDLE
        self.status_message = ''
        self.frame_count = 0
        self._readers: List[SignalReader] = []

    def add_reader(self, reader: SignalReader) -> SignalReader:
        """Register a callback called with every new signal. Returns the reader."""
        self._readers.append(reader)
        return reader

    def remove_reader(self, reader: SignalReader):
        self._readers.remove(reader)

    def update(self, signal: GestureSignal):
        self.signal = signal
        self.frame_count += 1
        self._notify(signal)

    def _notify(self, signal: GestureSignal):
        # readers may remove themselves while being called
        for reader in tuple(self._readers):
            reader(signal)

    def set_status(self, status: TrackingStatus, message: str = ''):
        self.status = TrackingStatus(status)
        self.status_message = message

    def reset(self):
        """Back to the initial signal (e.g. when the camera is stopped).

        Readers are told, as for an update, but ``frame_count`` is kept.
        """
        self.signal = self._initial
        self._notify(self.signal)


# -------------------------------------------------------------------------------
# Latest-sample slot
# -------------------------------------------------------------------------------

_EMPTY = object()


class LatestSample:
    """A one-place mailbox between the landmark source and the render tick.

    ``put`` overwrites whatever hasn't been consumed yet (older samples are
    dropped, never queued). ``take`` returns ``(sample, timestamp)`` and empties
    the slot, or ``None`` if nothing new arrived since the last ``take``.
    Note that ``sample`` itself can be ``None``, meaning "a frame arrived and
    nobody was in it", which is different from "no frame arrived".

    >>> slot = LatestSample()
    >>> slot.take() is None
    True
    >>> slot.put('old', 1.0)
    >>> slot.put(None, 2.0)
    >>> slot.dropped
    1
    >>> slot.take()
    (None, 2.0)
    >>> slot.take() is None
    True
    """

    def __init__(self):
        self._sample = _EMPTY
        self._timestamp = None
        self.dropped = 0

    def put(self, sample: Optional[LandmarkSample], timestamp: Timestamp):
        if self._sample is not _EMPTY:
            self.dropped += 1
        self._sample = sample
        self._timestamp = timestamp

    def take(self):
        if self._sample is _EMPTY:
            return None
        sample, timestamp = self._sample, self._timestamp
        self.clear()
        return sample, timestamp

    def clear(self):
        self._sample = _EMPTY
        self._timestamp = None

    def __bool__(self):
        return self._sample is not _EMPTY
