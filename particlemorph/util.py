"""Utils for particlemorph."""

import math
import time
from importlib.resources import files
from typing import Dict, TypeVar, Union

pkg_name = 'particlemorph'
data_files = files(pkg_name) / 'data'


def return_none(*args, **kwargs):
    """
    An empty function that returns None no matter the arguments.
    Often used as a "do nothing" general callback function.
    """
    return None


# --------------------------------------------------------------------------------------
# Object resolution

T = TypeVar('T')


def resolve_object(
    obj: Union[str, T],
    *,
    object_map: Dict[str, T],
    expected_type: type = None,
    error_message: str = None,
) -> T:
    """
    Resolves an object by either returning it directly if it's of the correct type,
    or looking it up in a mapping if it's a string.

    Args:
        obj: The object to resolve. Can be a string (to be looked up in object_map)
             or the object itself (if it's already of type T).
        object_map: A dictionary mapping strings to objects of type T.
        expected_type: (Optional) The expected type of the resolved object.
        error_message: (Optional) A custom error message to use if a ValueError
                       or TypeError is raised.

    Returns:
        The resolved object of type T.

    Raises:
        TypeError: If obj is not a string or of the expected type.
        ValueError: If obj is a string but is not found in object_map.

    >>> resolve_object('a', object_map={'a': 1})
    1
    >>> resolve_object(2, object_map={'a': 1}, expected_type=int)
    2
    >>> resolve_object('b', object_map={'a': 1})
    Traceback (most recent call last):
      ...
    ValueError: Unknown object identifier: b (choose from: a)
    """
    if isinstance(obj, str):
        if obj in object_map:
            resolved_obj = object_map[obj]
        else:
            msg = error_message or (
                f"Unknown object identifier: {obj} "
                f"(choose from: {', '.join(sorted(object_map))})"
            )
            raise ValueError(msg)
    elif expected_type is None or isinstance(obj, expected_type):
        resolved_obj = obj
    else:
        msg = error_message or f"Expected type {expected_type}, got {type(obj)}"
        raise TypeError(msg)

    if expected_type and not isinstance(resolved_obj, expected_type):
        msg = (
            error_message
            or f"Resolved object should be of type {expected_type}, got {type(resolved_obj)}"
        )
        raise TypeError(msg)

    return resolved_obj


# --------------------------------------------------------------------------------------
# Errors


class ParticleMorphError(Exception):
    """Base class for particlemorph errors."""


class ModelLoadError(ParticleMorphError):
    """Raised when a landmark model can't be found or loaded."""


class CameraOpenError(ParticleMorphError):
    """Raised when the video capture device can't be opened."""


class CameraReadError(ParticleMorphError):
    """Exception raised when camera read fails."""


# --------------------------------------------------------------------------------------
# Constants


class HandLandmark:
    WRIST = 0
    THUMB_CMC = 1
    THUMB_MCP = 2
    THUMB_IP = 3
    THUMB_TIP = 4
    INDEX_FINGER_MCP = 5
    INDEX_FINGER_PIP = 6
    INDEX_FINGER_DIP = 7
    INDEX_FINGER_TIP = 8
    MIDDLE_FINGER_MCP = 9
    MIDDLE_FINGER_PIP = 10
    MIDDLE_FINGER_DIP = 11
    MIDDLE_FINGER_TIP = 12
    RING_FINGER_MCP = 13
    RING_FINGER_PIP = 14
    RING_FINGER_DIP = 15
    RING_FINGER_TIP = 16
    PINKY_MCP = 17
    PINKY_PIP = 18
    PINKY_DIP = 19
    PINKY_TIP = 20


FINGER_TIPS = (
    HandLandmark.THUMB_TIP,
    HandLandmark.INDEX_FINGER_TIP,
    HandLandmark.MIDDLE_FINGER_TIP,
    HandLandmark.RING_FINGER_TIP,
    HandLandmark.PINKY_TIP,
)


class FaceLandmark:
    # Face mesh indices (only the ones we use)
    NOSE_TIP = 1


class Blendshape:
    EYE_BLINK_LEFT = 'eyeBlinkLeft'
    EYE_BLINK_RIGHT = 'eyeBlinkRight'
    EYE_LOOK_IN_LEFT = 'eyeLookInLeft'
    EYE_LOOK_OUT_LEFT = 'eyeLookOutLeft'
    EYE_LOOK_UP_LEFT = 'eyeLookUpLeft'
    EYE_LOOK_DOWN_LEFT = 'eyeLookDownLeft'
    EYE_LOOK_IN_RIGHT = 'eyeLookInRight'
    EYE_LOOK_OUT_RIGHT = 'eyeLookOutRight'
    EYE_LOOK_UP_RIGHT = 'eyeLookUpRight'
    EYE_LOOK_DOWN_RIGHT = 'eyeLookDownRight'
    # Not a MediaPipe blendshape: derived from hand landmarks by HandLandmarkSource
    HAND_CLOSURE = 'handClosure'


# --------------------------------------------------------------------------------------
# Numeric utils


def clip(value, lo, hi):
    """
    Clip ``value`` to ``[lo, hi]``, mapping non-finite values to 0 first.

    >>> clip(1.5, -1, 1)
    1.0
    >>> clip(-3, -1, 1)
    -1.0
    >>> clip(float('nan'), 0, 1)
    0.0
    >>> clip(float('inf'), -1, 1)
    0.0
    """
    value = float(value)
    if not math.isfinite(value):
        value = 0.0
    return float(min(max(value, lo), hi))


# --------------------------------------------------------------------------------------
# String utils


def format_milliseconds_time(timestamp):
    """Format a timestamp (in seconds) as a string with milliseconds."""
    formatted_time = time.strftime('%H:%M:%S', time.localtime(timestamp))
    milliseconds = int((timestamp % 1) * 1000)
    return f"{formatted_time}.{milliseconds:03d}"


def current_time_string_with_milliseconds():
    """Get the current time with milliseconds, as a string."""
    return format_milliseconds_time(time.time())


def format_float(value, ndigits=4):
    return f"{value:.{ndigits}f}"
