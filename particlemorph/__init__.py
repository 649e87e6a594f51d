"""

Particle morph: webcam gestures as a control signal for real-time visuals.

A vision model (MediaPipe) looks at the webcam and, each frame, sees a face or a hand
(or nothing). What visual toys (a particle system that morphs between shapes, a little
"collect the gold, avoid the antimatter" game, a control panel) need is not landmarks
though: they need a small, clean, bounded signal they can read every frame:

* ``tension`` in [0, 1]: how closed the fist is, or how much the eyes squint,
* ``position`` in [-1, 1]^2: where the hand or head is, relative to the center,
* ``detected``: whether someone is (stably) there.

This package is that signal pipeline. Landmarks are noisy and detection is
intermittent, so the normalizer applies dead zones, clamping, an activation delay
(a subject must be present for a while before it counts) and a chosen policy for
what happens when tracking is lost (snap back to the center, or hold).

Here's what exists:

* ``signals``: the data (``LandmarkSample``, ``GestureSignal``) and the
    ``GestureState`` holder that consumers get a handle on.
* ``normalizer``: ``SignalNormalizer``, the per-frame sample to signal logic, and its
    configuration presets (``'face'``, ``'hand'``).
* ``landmarks``: MediaPipe face and hand landmark sources.
* ``session``: ``GestureSession``, wiring a source, a normalizer and a state together,
    with a latest-sample-wins hand-off and a tracking status.
* ``display`` and ``script_utils``: an OpenCV preview of the signal, and the
    ``particlemorph_cli`` to run it (see ``bin/particlemorph_cli.py``).

The renderers, the game and the panel are not here: they just read
``GestureState.signal``.

"""

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
from particlemorph.normalizer import (
    NormalizerConfig,
    SignalNormalizer,
    make_config,
    normalizer_presets,
)
from particlemorph.session import GestureSession
