"""Display utilities: an OpenCV preview of the gesture signal on the camera image."""

import cv2
import numpy as np
from typing import Union, Tuple, Optional, Callable, Sequence

from particlemorph.signals import GestureSignal, GestureState, is_active
from particlemorph.util import format_float

# -------------------------------------------------------------------------------
# Types
# -------------------------------------------------------------------------------

Color = Union[Tuple[int, int, int], Tuple[int, int, int, int]]  # BGR or BGRA

IDLE_CURSOR_COLOR = (255, 255, 255)
ACTIVE_CURSOR_COLOR = (255, 0, 255)  # magenta: "gravity well" mode
LOST_CURSOR_COLOR = (128, 128, 128)

# -------------------------------------------------------------------------------
# Conversions
# -------------------------------------------------------------------------------


def signal_to_pixel(position, img_shape) -> Tuple[int, int]:
    """
    Map a signal position (each axis in [-1, 1], y up) to pixel coordinates.

    >>> signal_to_pixel((0.0, 0.0), (480, 640, 3))
    (320, 240)
    >>> signal_to_pixel((1.0, 1.0), (480, 640, 3))
    (640, 0)
    """
    h, w = img_shape[:2]
    x, y = position
    return int(round((1 + x) * w / 2)), int(round((1 - y) * h / 2))


def signal_features(signal: GestureSignal, state: Optional[GestureState] = None):
    """The signal (and status) as a flat dict of displayable values."""
    features = {
        'tension': signal.tension,
        'x': signal.position.x,
        'y': signal.position.y,
        'detected': signal.detected,
        'active': is_active(signal),
    }
    if state is not None:
        features['status'] = state.status.value
    return features


# -------------------------------------------------------------------------------
# Screen drawing functions
# -------------------------------------------------------------------------------


def display_signal_on_image(
    img: np.ndarray,
    features: dict,
    *,
    font=cv2.FONT_HERSHEY_SIMPLEX,
    font_scale: float = 0.7,
    color: Color = (0, 255, 0),
    thickness: float = 2,
    ndigits: int = 2,
    x_pos=10,
    y_pos=30,
    y_increment=28,
    bg_color: Color = (
        150,
        150,
        150,
        128,
    ),  # Light grey, semi-transparent (BGR + alpha)
):
    """
    Display signal features on the image with a semi-transparent background.

    Args:
        img: The image to draw on
        features: Dictionary of values to display
        font: Font type to use
        font_scale: Size of the font
        color: Text color in BGR format
        thickness: Line thickness of text
        ndigits: Number of decimals for float values
        x_pos: Starting x position for text
        y_pos: Starting y position for text
        y_increment: Vertical space between lines
        bg_color: Background color (BGR + alpha) where alpha is 0-255
    """
    if not features:
        return img

    lines = [
        f"{key}: {format_float(value, ndigits) if isinstance(value, float) else value}"
        for key, value in features.items()
    ]

    overlay = img.copy()
    if len(bg_color) == 4:
        bg_rgb = bg_color[:3]
        alpha = bg_color[3] / 255.0
    else:
        bg_rgb = bg_color
        alpha = 0.5

    padding = 5
    for idx, text in enumerate(lines):
        (text_width, text_height), _ = cv2.getTextSize(
            text, font, font_scale, thickness
        )
        cv2.rectangle(
            overlay,
            (x_pos - padding, y_pos + idx * y_increment - text_height - padding),
            (x_pos + text_width + padding, y_pos + idx * y_increment + padding),
            bg_rgb,
            -1,
        )

    cv2.addWeighted(overlay, alpha, img, 1 - alpha, 0, img)

    for idx, text in enumerate(lines):
        cv2.putText(
            img,
            text,
            (x_pos, y_pos + idx * y_increment),
            font,
            font_scale,
            color,
            thickness,
        )

    return img


def draw_anchor_lines(
    img,
    anchor: Optional[Sequence[float]],
    *,
    mirrored: bool = True,
    color: Color = (0, 255, 0),
    thickness: int = 1,
):
    """
    Draws vertical and horizontal lines across the image through the anchor.

    Args:
        img: The input image.
        anchor: Normalized (x, y) of the anchor in the *unmirrored* frame, or None.
        mirrored: Whether ``img`` was flipped horizontally for display.

    Returns:
        img: The image with lines drawn.
    """
    if anchor is None:
        return img
    h, w = img.shape[:2]
    x, y = anchor[0], anchor[1]
    if mirrored:
        x = 1 - x
    cx, cy = int(x * w), int(y * h)
    cv2.line(img, (cx, 0), (cx, h), color, thickness)
    cv2.line(img, (0, cy), (w, cy), color, thickness)
    return img


def draw_cursor(img, signal: GestureSignal, *, radius: int = 18, thickness: int = 2):
    """Draw the cursor a game would put at ``signal.position``."""
    if not signal.detected:
        color = LOST_CURSOR_COLOR
    elif is_active(signal):
        color = ACTIVE_CURSOR_COLOR
    else:
        color = IDLE_CURSOR_COLOR
    center = signal_to_pixel(signal.position, img.shape)
    cv2.circle(img, center, radius, color, thickness)
    # inner dot grows with tension
    inner = max(1, int(radius * signal.tension))
    cv2.circle(img, center, inner, color, -1)
    return img


def draw_on_screen(
    img: np.ndarray,
    signal: GestureSignal,
    *,
    state: Optional[GestureState] = None,
    anchor: Optional[Sequence[float]] = None,
    mirrored: bool = True,
    draw_signal_features: Optional[Callable] = display_signal_on_image,
):
    """
    Draw anchor guide lines, the cursor, and the signal values on the image.

    Args:
        img: The (display) image
        signal: The current gesture signal
        state: The gesture state, to display the tracking status
        anchor: Normalized anchor landmark, for the guide lines
        mirrored: Whether ``img`` is flipped horizontally for display
        draw_signal_features: Function to draw the values (or None to skip)

    Returns:
        img: The image with visualizations added
    """
    img = draw_anchor_lines(img, anchor, mirrored=mirrored)
    img = draw_cursor(img, signal)
    if draw_signal_features:
        img = draw_signal_features(img, signal_features(signal, state))
    return img
