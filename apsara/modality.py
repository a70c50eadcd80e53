"""Session modality states and the forwarding policy for client frames."""

from enum import Enum


class Modality(str, Enum):
    AUDIO = "AUDIO"
    TEXT = "TEXT"
    SWITCHING = "SWITCHING"

    @property
    def is_terminal(self) -> bool:
        return self is not Modality.SWITCHING


class FrameType(str, Enum):
    AUDIO = "audio"
    VIDEO = "video"
    CAMERA = "camera"
    TEXT = "text"
    INTERRUPT = "interrupt"
    SET_MODALITY = "set_modality"


_ANY = frozenset(Modality)
_CONNECTED = frozenset({Modality.AUDIO, Modality.TEXT})

# States in which each client frame type may be handled. Every FrameType
# must have an entry.
FRAME_POLICY: dict[FrameType, frozenset[Modality]] = {
    # The upstream rejects audio input while configured for text output
    FrameType.AUDIO: frozenset({Modality.AUDIO}),
    FrameType.VIDEO: _CONNECTED,
    FrameType.CAMERA: _CONNECTED,
    FrameType.TEXT: _CONNECTED,
    FrameType.INTERRUPT: _ANY,
    FrameType.SET_MODALITY: _ANY,
}


def frame_allowed(frame_type: FrameType, state: Modality) -> bool:
    """Whether a frame of ``frame_type`` may be handled in ``state``.

    Raises:
        KeyError: ``frame_type`` has no entry in FRAME_POLICY.
    """
    return state in FRAME_POLICY[frame_type]


def parse_modality(value: object) -> Modality:
    """Parse a client-requested target modality (AUDIO or TEXT only)."""
    if isinstance(value, str):
        try:
            modality = Modality(value.strip().upper())
        except ValueError:
            pass
        else:
            if modality.is_terminal:
                return modality
    raise ValueError(f"Invalid modality: {value!r}. Expected AUDIO or TEXT.")
