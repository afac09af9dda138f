from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple, Union

CLOSED_SENTINEL = "CLOSED"
CLOSED_ALIASES = {"closed", "chiuso"}
SPLIT_SEPARATOR = " / "
RANGE_SEPARATOR = " - "

Segment = Tuple[int, int]


@dataclass(frozen=True)
class Unset:
    pass


@dataclass(frozen=True)
class Closed:
    pass


@dataclass(frozen=True)
class Locked:
    """Free text carried over from input (leave codes, notes). Never overwritten."""

    text: str


@dataclass(frozen=True)
class Worked:
    segments: Tuple[Segment, ...]
    label: Optional[str] = None

    @property
    def start_hour(self) -> int:
        return self.segments[0][0]

    @property
    def end_hour(self) -> int:
        return self.segments[-1][1]

    @property
    def is_split(self) -> bool:
        return len(self.segments) > 1

    @property
    def hours(self) -> int:
        return sum(max(0, end - start) for start, end in self.segments)


ShiftCell = Union[Unset, Closed, Locked, Worked]
UNSET = Unset()
CLOSED = Closed()


def _hour(label: str) -> int:
    # Only the hour component is read: "09:45" -> 9.
    return int(label.strip().split(":", 1)[0])


def parse_segment(text: str) -> Optional[Segment]:
    parts = text.replace(" ", "").split("-")
    if len(parts) != 2:
        return None
    try:
        return _hour(parts[0]), _hour(parts[1])
    except ValueError:
        return None


def parse_segments(text: str) -> Tuple[Segment, ...]:
    """Return every parseable "HH:MM-HH:MM" range in a "/"-joined value."""
    segments = []
    for chunk in (text or "").split("/"):
        segment = parse_segment(chunk)
        if segment is not None:
            segments.append(segment)
    return tuple(segments)


def has_digit(text: Optional[str]) -> bool:
    return any(char.isdigit() for char in (text or ""))


def is_closed_label(text: Optional[str]) -> bool:
    return (text or "").strip().lower() in CLOSED_ALIASES


def parse_cell(raw: Optional[str]) -> ShiftCell:
    text = (raw or "").strip()
    if not text:
        return UNSET
    if is_closed_label(text):
        return CLOSED
    if has_digit(text) and "-" in text:
        chunks = [chunk for chunk in text.split("/") if chunk.strip()]
        segments = parse_segments(text)
        if segments and len(segments) == len(chunks):
            return Worked(segments, label=text)
    return Locked(text)


def format_segments(segments: Tuple[Segment, ...]) -> str:
    return SPLIT_SEPARATOR.join(
        f"{start:02d}:00{RANGE_SEPARATOR}{end:02d}:00" for start, end in segments
    )


def format_cell(cell: ShiftCell) -> str:
    if isinstance(cell, Closed):
        return CLOSED_SENTINEL
    if isinstance(cell, Locked):
        return cell.text
    if isinstance(cell, Worked):
        return cell.label or format_segments(cell.segments)
    return ""


def cell_hours(cell: ShiftCell) -> int:
    if isinstance(cell, Worked):
        return cell.hours
    if isinstance(cell, Locked):
        return sum(max(0, end - start) for start, end in parse_segments(cell.text))
    return 0


def shift_hours(raw: Optional[str]) -> int:
    """Duration in whole hours of a legacy shift string (split shifts summed)."""
    return cell_hours(parse_cell(raw))


def is_empty(cell: ShiftCell) -> bool:
    return isinstance(cell, Unset)
