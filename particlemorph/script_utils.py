"""Utility functions for running particlemorph from a script or the command line."""

import json
import time
from functools import partial
from typing import Any, Callable, Dict, Optional, Union

import argh
import cv2

from particlemorph.display import draw_on_screen as DFLT_DRAW_ON_SCREEN
from particlemorph.display import signal_features
from particlemorph.landmarks import source_factories
from particlemorph.normalizer import (
    DFLT_ACTIVATION_DELAY,
    DFLT_LOSS_POLICY,
    DFLT_SMOOTHING,
    DFLT_TENSION_POLICY,
    SignalNormalizer,
    anchor_point,
    loss_policies,
    normalizer_presets,
    tension_policies,
)
from particlemorph.session import GestureSession, print_status
from particlemorph.signals import GestureState, TrackingStatus
from particlemorph.util import (
    CameraOpenError,
    CameraReadError,
    resolve_object,
    return_none as do_nothing,
)

resolve_source_factory = partial(resolve_object, object_map=source_factories)


# -------------------------------------------------------------------------------
# Logging utilities
# -------------------------------------------------------------------------------


def print_json_if_possible(x):
    """Prints the input as json if it's serializable, as is if not."""
    try:
        x = json.dumps(x)
    except (TypeError, ValueError):
        pass
    print(x)


# -------------------------------------------------------------------------------
# Keyboard handling functions
# -------------------------------------------------------------------------------

ESCAPE_KEY_ASCII = 27
BREAK_KEYS = {ESCAPE_KEY_ASCII, ord('q')}


class KeyboardBreakSignal(Exception):
    """Exception raised when a break key is pressed."""


def read_keyboard(wait_time: int = 1) -> int:
    """
    Read keyboard input with the specified wait time.

    Args:
        wait_time: Time to wait for keyboard input in milliseconds

    Returns:
        The key code (255 if no key was pressed)
    """
    return cv2.waitKey(wait_time) & 0xFF


def keyboard_feature_vector(key_code: int) -> Dict[str, Any]:
    """
    Convert a key code into a feature vector with keyboard information.

    Raises:
        KeyboardBreakSignal: If a key that signals program termination is pressed
    """
    keyboard_fv = {
        'key_code': key_code,
        'key_pressed': key_code not in (0, 0xFF),
        'timestamp': time.time(),
    }
    if keyboard_fv['key_code'] in BREAK_KEYS:
        raise KeyboardBreakSignal(f"Break key pressed: {key_code}")
    return keyboard_fv


# -------------------------------------------------------------------------------
# Camera handling functions
# -------------------------------------------------------------------------------


def open_camera(camera_index: int = 0) -> cv2.VideoCapture:
    """
    Open the video capture device.

    Raises:
        CameraOpenError: If the device can't be opened
    """
    cap = cv2.VideoCapture(camera_index)
    if not cap.isOpened():
        cap.release()
        raise CameraOpenError(f"Could not open video capture device {camera_index}")
    return cap


def read_camera(cap: cv2.VideoCapture) -> Any:
    """
    Read a frame from the camera, as is (not mirrored).

    The normalizer does the mirroring of positions itself, so landmarks are
    detected on the raw frame; only the displayed image is flipped.

    Raises:
        CameraReadError: If the camera read operation fails
    """
    success, img = cap.read()
    if not success:
        raise CameraReadError("Failed to read from camera")
    return img


# -------------------------------------------------------------------------------
# Main run function
# -------------------------------------------------------------------------------

DFLT_TRACKER = 'face'
DFLT_WINDOW_NAME = 'Particle Morph'


def run_particlemorph(
    *,
    tracker: Union[str, Callable] = DFLT_TRACKER,
    normalizer: Optional[SignalNormalizer] = None,
    model_path: Optional[str] = None,
    camera_index: int = 0,
    log_signal: Optional[Callable] = None,
    log_status: Optional[Callable] = print_status,
    window_name: str = DFLT_WINDOW_NAME,
    draw_on_screen: Optional[Callable] = DFLT_DRAW_ON_SCREEN,
) -> GestureState:
    """
    Run the camera preview of the gesture signal.

    Args:
        tracker: Landmark source factory or name ('face' or 'hand')
        normalizer: Signal normalizer (default: the preset of the tracker's name)
        model_path: Landmark model file (default: the source's default)
        camera_index: Index of the video capture device
        log_signal: Function to log each frame's signal (or None to disable)
        log_status: Function to log tracking status changes (or None to disable)
        window_name: Title for the display window
        draw_on_screen: Function drawing the signal on the image (or None)

    Returns:
        The final ``GestureState``.
    """
    source_factory = resolve_source_factory(tracker)
    if model_path:
        source_factory = partial(source_factory, model_path)
    if normalizer is None:
        preset = tracker if isinstance(tracker, str) else 'face'
        normalizer = SignalNormalizer(preset=preset)
    log_signal = log_signal or do_nothing

    session = GestureSession(source_factory, normalizer, log_status=log_status)
    try:
        cap = open_camera(camera_index)
    except CameraOpenError as e:
        session.state.set_status(TrackingStatus.UNAVAILABLE, str(e))
        session.log_status(session.status, str(e))
        return session.state

    try:
        with session:
            while cap.isOpened():
                try:
                    keyboard_feature_vector(read_keyboard())

                    frame = read_camera(cap)
                    h, w = frame.shape[:2]
                    normalizer.viewport_size = (w, h)

                    sample = session.submit(frame)
                    signal = session.tick()
                    log_signal(signal_features(signal))

                    if draw_on_screen:
                        anchor = None
                        if sample is not None:
                            anchor = anchor_point(
                                sample.points, normalizer.config.anchor_indices
                            )
                        img = draw_on_screen(
                            cv2.flip(frame, 1),
                            signal,
                            state=session.state,
                            anchor=anchor,
                        )
                        cv2.imshow(window_name, img)

                except (CameraReadError, KeyboardBreakSignal):
                    break
    finally:
        cap.release()
        cv2.destroyAllWindows()

    return session.state


@argh.arg('--sensitivity', type=float, help="Position gain (default: the preset's)")
@argh.arg('--tracker', choices=sorted(source_factories))
@argh.arg('--loss-policy', choices=sorted(loss_policies))
@argh.arg('--tension-policy', choices=sorted(tension_policies))
def particlemorph_cli(
    tracker: str = DFLT_TRACKER,
    model_path: str = None,
    camera_index: int = 0,
    # Normalization
    activation_delay: float = DFLT_ACTIVATION_DELAY,
    loss_policy: str = DFLT_LOSS_POLICY,
    tension_policy: str = DFLT_TENSION_POLICY,
    sensitivity: float = None,
    smoothing: float = DFLT_SMOOTHING,
    # Logging options
    log_signal: bool = False,
    # Display options
    window_name: str = DFLT_WINDOW_NAME,
    list_presets: bool = False,
):
    """
    Run the particlemorph camera preview with the specified parameters.

    Args:
        tracker: What to track: 'face' (blinks and nose) or 'hand' (fist and palm)
        model_path: Path to the MediaPipe .task model file
        camera_index: Index of the video capture device
        activation_delay: Seconds a subject must be visible before it counts
        loss_policy: What the signal does when tracking is lost ('snap' or 'hold')
        tension_policy: 'continuous' or 'binary' tension
        sensitivity: Position gain (default: the preset's)
        smoothing: Exponential smoothing factor in [0, 1) (0 disables)
        log_signal: Whether to print the signal of every frame
        window_name: Title for the display window
        list_presets: List the normalizer presets and exit
    """
    if list_presets:
        print("Available normalizer presets:")
        for name in sorted(normalizer_presets):
            print(f"  - {name}: {normalizer_presets[name]}")
        return

    overrides = dict(
        activation_delay=activation_delay,
        loss_policy=loss_policy,
        tension_policy=tension_policy,
        smoothing=smoothing,
    )
    if sensitivity is not None:
        overrides['sensitivity'] = sensitivity
    normalizer = SignalNormalizer(preset=tracker, **overrides)

    state = run_particlemorph(
        tracker=tracker,
        normalizer=normalizer,
        model_path=model_path,
        camera_index=camera_index,
        log_signal=print_json_if_possible if log_signal else None,
        window_name=window_name,
    )
    print(f"\n---> Processed {state.frame_count} frames ({state.status.value})\n")


def dispatched_particlemorph_cli():
    argh.dispatch_command(particlemorph_cli)
