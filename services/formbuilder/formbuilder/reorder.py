"""Drag-and-drop reordering expressed as pure functions over a drag session.

A gesture goes ``begin_drag`` -> ``drag_over``* -> ``drop`` (or
``end_drag`` on cancel). Every handler takes the current :class:`DragSession`
and returns the next one, so no state is kept between calls. The preview
(placeholder) position is just ``DragSession.preview_index``; drawing it is
up to whoever renders the list.
"""
from __future__ import annotations

import dataclasses
import logging
from typing import Optional, Sequence

from .field_list import FieldList

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class Box:
    """Vertical extent of one rendered field."""

    top: float
    height: float

    @property
    def midpoint(self) -> float:
        return self.top + self.height / 2


@dataclasses.dataclass(frozen=True)
class DragSession:
    dragging_id: Optional[str] = None
    from_index: int = -1
    preview_index: Optional[int] = None

    @property
    def active(self) -> bool:
        return self.dragging_id is not None and self.from_index >= 0


IDLE = DragSession()


@dataclasses.dataclass(frozen=True)
class DropTarget:
    to: int
    raw_to: int
    noop: bool


@dataclasses.dataclass(frozen=True)
class DropOutcome:
    fields: FieldList
    session: DragSession
    target: Optional[DropTarget] = None

    @property
    def moved(self) -> bool:
        """Whether the drop changed the order (and so dirties the form)."""

        return self.target is not None and not self.target.noop


def compute_index(pointer_y: float, boxes: Sequence[Box]) -> int:
    """Insertion index for a pointer: before the first box whose midpoint is below it."""

    for index, box in enumerate(boxes):
        if pointer_y < box.midpoint:
            return index
    return len(boxes)


def compute_drop_target(from_index: int, raw_to: int) -> DropTarget:
    # Removing the dragged element shifts every later index down by one.
    to = raw_to - 1 if from_index < raw_to else raw_to
    noop = to == from_index or raw_to == from_index + 1
    return DropTarget(to=to, raw_to=raw_to, noop=noop)


def raw_index_from_target(pointer_y: float, target_index: int, target_box: Box) -> int:
    return target_index if pointer_y < target_box.midpoint else target_index + 1


def begin_drag(fields: FieldList, field_id: str) -> DragSession:
    from_index = fields.index_of(field_id)
    if from_index < 0:
        logger.debug("Ignoring drag of unknown field %s", field_id)
        return IDLE
    return DragSession(dragging_id=field_id, from_index=from_index)


def drag_over(session: DragSession, pointer_y: float, boxes: Sequence[Box]) -> DragSession:
    if not session.active:
        return session
    return dataclasses.replace(session, preview_index=compute_index(pointer_y, boxes))


def end_drag(session: DragSession) -> DragSession:
    """Finish or cancel a gesture; always returns the idle session."""

    if session.active:
        logger.debug("Drag of %s ended without a move", session.dragging_id)
    return IDLE


def commit(fields: FieldList, from_index: int, to_index: int) -> FieldList:
    return fields.move(from_index, to_index)


def drop(
    session: DragSession,
    fields: FieldList,
    pointer_y: Optional[float] = None,
    target_index: Optional[int] = None,
    target_box: Optional[Box] = None,
) -> DropOutcome:
    """Resolve a drop into at most one move and reset the session.

    The preview index is used when a drag-over already placed it. Otherwise
    the pointer is compared against the drop target's box. A drop with
    neither is treated as a cancel.
    """

    if not session.active:
        return DropOutcome(fields=fields, session=IDLE)

    if session.preview_index is not None:
        raw_to = session.preview_index
    elif pointer_y is not None and target_index is not None and target_box is not None:
        raw_to = raw_index_from_target(pointer_y, target_index, target_box)
    else:
        return DropOutcome(fields=fields, session=end_drag(session))

    if session.from_index >= len(fields) or fields[session.from_index].id != session.dragging_id:
        logger.warning(
            "Field list changed during drag of %s; dropping the gesture", session.dragging_id
        )
        return DropOutcome(fields=fields, session=IDLE)

    raw_to = max(0, min(raw_to, len(fields)))
    target = compute_drop_target(session.from_index, raw_to)
    if target.noop:
        return DropOutcome(fields=fields, session=IDLE, target=target)
    return DropOutcome(
        fields=commit(fields, session.from_index, target.to),
        session=IDLE,
        target=target,
    )
