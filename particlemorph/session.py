"""A tracking session: landmark source -> latest sample -> normalizer -> state.

>>> from particlemorph.signals import LandmarkSample
>>> face = LandmarkSample(points=[(0.5, 0.5, 0.0)] * 2)
>>> session = GestureSession(lambda: (lambda frame, timestamp: face), log_status=None)
>>> session.start()
True
>>> session.tick()  # nothing submitted yet: signal unchanged
GestureSignal(tension=0.0, position=Position(x=0.0, y=0.0), detected=False)
>>> _ = session.submit('frame', now=0.0)
>>> session.tick().detected
False
>>> _ = session.submit('frame', now=1.0)
>>> session.tick().detected
True
>>> session.stop()
>>> session.state.signal.detected, session.state.status.value
(False, 'stopped')
"""

import time
from typing import Callable, Optional

from particlemorph.normalizer import SignalNormalizer
from particlemorph.signals import (
    GestureSignal,
    GestureState,
    LandmarkSample,
    LatestSample,
    Timestamp,
    TrackingStatus,
)
from particlemorph.util import (
    ParticleMorphError,
    current_time_string_with_milliseconds,
    return_none,
)

# (frame, timestamp) -> sample or None
LandmarkSourceFunc = Callable[[object, Timestamp], Optional[LandmarkSample]]


def print_status(status: TrackingStatus, message: str = ''):
    """Print a tracking status change, with the time."""
    line = f"[{current_time_string_with_milliseconds()}] Tracking {status.value}"
    print(f"{line}: {message}" if message else line)


class GestureSession:
    """
    Owns one tracking session and the ``GestureState`` it writes to.

    Args:
        source_factory: Called (without arguments) by ``start`` to make the
            landmark source, a ``(frame, timestamp) -> sample`` callable. Errors
            raised here make the session ``unavailable`` instead of failing.
        normalizer: The ``SignalNormalizer`` to use (a default one if not given).
        state: The ``GestureState`` to write to (a new one if not given). Hand it
            (or ``session.state``) to whatever reads the signal.
        clock: Gives the current time, in seconds, when ``submit`` isn't given one.
            Must never go backwards.
        log_status: Called with ``(status, message)`` on status changes
            (``None`` to be silent).
    """

    def __init__(
        self,
        source_factory: Callable[[], LandmarkSourceFunc],
        normalizer: Optional[SignalNormalizer] = None,
        state: Optional[GestureState] = None,
        *,
        clock: Callable[[], Timestamp] = time.monotonic,
        log_status: Optional[Callable] = print_status,
    ):
        self.source_factory = source_factory
        self.normalizer = normalizer or SignalNormalizer()
        self.state = state or GestureState()
        self.clock = clock
        self.log_status = log_status or return_none
        self.slot = LatestSample()
        self.source = None

    @property
    def status(self) -> TrackingStatus:
        return self.state.status

    def _set_status(self, status: TrackingStatus, message: str = ''):
        self.state.set_status(status, message)
        self.log_status(status, message)

    def start(self) -> bool:
        """Make the landmark source. Returns whether tracking is available."""
        self._close_source()
        self._set_status(TrackingStatus.STARTING)
        try:
            self.source = self.source_factory()
        except (ParticleMorphError, ImportError, RuntimeError, OSError) as e:
            self.source = None
            self._set_status(TrackingStatus.UNAVAILABLE, str(e))
            return False
        self._set_status(TrackingStatus.ACTIVE)
        return True

    def submit(self, frame, now: Optional[Timestamp] = None):
        """
        Detect landmarks in ``frame`` and make them the latest sample.

        An unconsumed previous sample is dropped. Does nothing (returns ``None``)
        if tracking is not active.
        """
        if self.source is None:
            return None
        now = self.clock() if now is None else now
        sample = self.source(frame, now)
        self.slot.put(sample, now)
        return sample

    def tick(self) -> GestureSignal:
        """
        Update the state from the latest sample, if one arrived since last tick.

        Called once per render frame. If nothing new arrived, the signal is left
        as is.
        """
        latest = self.slot.take()
        if latest is None:
            return self.state.signal
        sample, timestamp = latest
        signal = self.normalizer.process(sample, timestamp)
        self.state.update(signal)
        return signal

    def step(self, frame, now: Optional[Timestamp] = None) -> GestureSignal:
        """``submit`` then ``tick``: for loops where frames and renders are in sync."""
        self.submit(frame, now)
        return self.tick()

    def stop(self):
        """Tear down: close the source and reset the signal to its default."""
        self._close_source()
        self.slot.clear()
        self.normalizer.reset()
        self.state.reset()
        self._set_status(TrackingStatus.STOPPED)

    def _close_source(self):
        if self.source is not None and hasattr(self.source, 'close'):
            self.source.close()
        self.source = None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *exc):
        self.stop()
