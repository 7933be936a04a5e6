"""
Frames and Temporal Windows
===========================

A Frame is one agent's observation at one tick: an image-like channel
array plus a short vector of scalar stats. Frames are immutable once
built, so the same Frame can be shared by several temporal windows and
by every Experience that references it.

A temporal window is a tuple of exactly WINDOW_LENGTH frames, oldest
first. ``None`` inside a window is the empty-frame marker and is fed to
the network as zeros.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np


@dataclass(frozen=True, eq=False)
class Frame:
    """
    Read-only observation snapshot.

    Attributes:
        image: Channel array, shape (channels, sight, sight)
        stats: Scalar stat vector, shape (num_stats,)
        flat: image and stats concatenated as one float32 vector

    Example:
        >>> frame = Frame(np.zeros((7, 16, 16)), np.zeros(6))
        >>> frame.size
        1798
    """
    image: np.ndarray
    stats: np.ndarray
    flat: np.ndarray = field(init=False, repr=False)

    def __post_init__(self):
        image = np.array(self.image, dtype=np.float32)
        stats = np.array(self.stats, dtype=np.float32).reshape(-1)
        flat = np.concatenate([image.reshape(-1), stats])

        for array in (image, stats, flat):
            array.setflags(write=False)

        # Frozen dataclass: bypass __setattr__ once, during construction
        object.__setattr__(self, 'image', image)
        object.__setattr__(self, 'stats', stats)
        object.__setattr__(self, 'flat', flat)

    @property
    def size(self) -> int:
        """Number of floats this frame occupies in a network input."""
        return self.flat.size

    @classmethod
    def zeros(cls, channels: int, sight_diameter: int, num_stats: int) -> 'Frame':
        """An all-zero frame with the given geometry."""
        return cls(
            np.zeros((channels, sight_diameter, sight_diameter), dtype=np.float32),
            np.zeros(num_stats, dtype=np.float32),
        )


Window = Tuple[Optional[Frame], ...]


def make_window(frames: Iterable[Optional[Frame]], window_length: int) -> Window:
    """
    Build a window from the most recent frames, left-padding with empty markers.

    Args:
        frames: Frames oldest first (at most window_length of them)
        window_length: Required window length

    Raises:
        ValueError: If more frames are given than fit in the window
    """
    frames = tuple(frames)
    if len(frames) > window_length:
        raise ValueError(f"{len(frames)} frames do not fit a window of {window_length}")
    return (None,) * (window_length - len(frames)) + frames


def shift_window(frames: Sequence[Optional[Frame]], next_frame: Optional[Frame]) -> Window:
    """The window one tick later: drop the oldest frame, append next_frame."""
    return tuple(frames[1:]) + (next_frame,)


def fill_frames(target: np.ndarray, frames: Sequence[Optional[Frame]], frame_size: int) -> None:
    """
    Write a window into a pre-allocated row, oldest frame first.

    Args:
        target: Row of length len(frames) * frame_size, written in place
        frames: Window to write; None entries are written as zeros
        frame_size: Floats per frame
    """
    offset = 0
    for frame in frames:
        if frame is None:
            target[offset:offset + frame_size] = 0.0
        else:
            if frame.size != frame_size:
                raise ValueError(f"Frame of size {frame.size} in a window of {frame_size}-float frames")
            target[offset:offset + frame_size] = frame.flat
        offset += frame_size
