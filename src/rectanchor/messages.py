"""
User-facing help and error messages.
"""

from enum import Enum


class Message(Enum):
    # Move the camera until the rectangle's surface is tracked
    HELP_FIND_SURFACE = "help_find_surface"
    HELP_TAP_HOLD_RECT = "help_tap_hold_rect"
    HELP_TAP_RELEASE_RECT = "help_tap_release_rect"
    # A touch produced no rectangle
    ERR_NO_RECT = "err_no_rect"
    # A rectangle was found but no surface under three of its corners
    ERR_NO_PLANE_FOR_RECT = "err_no_plane_for_rect"

    @property
    def text(self) -> str:
        if self is Message.ERR_NO_PLANE_FOR_RECT:
            return f"The rectangle's surface wasn't found. {Message.HELP_FIND_SURFACE.text}"
        return _TEXT[self]

    @property
    def is_error(self) -> bool:
        return self in (Message.ERR_NO_RECT, Message.ERR_NO_PLANE_FOR_RECT)


_TEXT = {
    Message.HELP_FIND_SURFACE: "Move your camera until you see a grid covering the surface of your rectangle.",
    Message.HELP_TAP_HOLD_RECT: "Tap and hold to select a rectangle.",
    Message.HELP_TAP_RELEASE_RECT: "Release to finalize your selection.",
    Message.ERR_NO_RECT: "The rectangle couldn't be identified. Try moving your camera to another angle.",
}
