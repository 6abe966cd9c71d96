"""Scroll convergence: keep a jumped-to heading pinned at the viewport top.

A single ``scroll_into_view`` is not enough in documents whose layout keeps
shifting after the jump (images finishing layout, widgets rebuilt after the
selection moves). Each navigation therefore starts a verification session:

1. Sleep (first attempt ``first_delay_ms``, later ones ``retry_delay_ms``).
2. Ask the editor for a two-phase measurement of the target range.
3. Outcome of the measurement:
   - stale: the live selection is no longer the target → abort silently
   - unmeasurable: re-issue the scroll and try again, or give up with a
     warning once the attempt budget is spent
   - geometry: if the block drifted beyond tolerance, force the scroll
     offset and re-issue the scroll; either way keep checking while budget
     remains, to catch late shifts

At most one session exists per view. Starting a new one cancels the old one,
and closing the panel cancels explicitly; nothing relies on garbage
collection to stop a session.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

import structlog

from headnav.config import ScrollSettings
from headnav.schedulers import ms_to_seconds

if TYPE_CHECKING:
    from headnav.models.editor import Geometry, TextRange
    from headnav.protocols import EditorViewProtocol

log = structlog.get_logger()

# Forced scroll offsets closer than this to the current one are left alone
_SCROLL_EPSILON_PX = 1


class VerificationStatus(StrEnum):
    STALE = "stale"
    RETRY = "retry"
    ALIGNED = "aligned"
    CORRECTED = "corrected"
    GAVE_UP = "gave_up"


@dataclass
class ScrollVerificationSession:
    """One in-flight run of the verification protocol for one view."""

    view_id: str
    target: TextRange
    focus_editor: bool
    attempt: int = 0
    cancelled: bool = False
    outcomes: list[VerificationStatus] = field(default_factory=list)
    task: asyncio.Task[None] | None = None


@dataclass(frozen=True)
class _Measurement:
    selection: TextRange
    geometry: Geometry | None


class ScrollConvergenceController:
    """Owns the per-view session table. Only this class mutates it."""

    def __init__(self, policy: ScrollSettings | None = None) -> None:
        self.policy = policy or ScrollSettings()
        self._sessions: dict[str, ScrollVerificationSession] = {}

    # ------------------------------------------------------------------
    # Policy
    # ------------------------------------------------------------------

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait before ``attempt`` (0-based)."""
        if attempt == 0:
            return ms_to_seconds(self.policy.first_delay_ms)
        return ms_to_seconds(self.policy.retry_delay_ms)

    def needs_correction(self, offset_from_viewport_top: float) -> bool:
        if offset_from_viewport_top < 0:
            return abs(offset_from_viewport_top) > self.policy.negative_tolerance_px
        return offset_from_viewport_top > self.policy.tolerance_px

    # ------------------------------------------------------------------
    # Session table
    # ------------------------------------------------------------------

    def session_for(self, view_id: str) -> ScrollVerificationSession | None:
        return self._sessions.get(view_id)

    def cancel(self, view_id: str) -> bool:
        """Cancel the in-flight session for ``view_id``; True if there was one."""
        session = self._sessions.pop(view_id, None)
        if session is None:
            return False
        session.cancelled = True
        if session.task is not None and not session.task.done():
            session.task.cancel()
        log.debug("scroll_verification_cancelled", view_id=view_id, attempt=session.attempt)
        return True

    def cancel_all(self) -> None:
        for view_id in list(self._sessions):
            self.cancel(view_id)

    def _discard(self, session: ScrollVerificationSession) -> None:
        if self._sessions.get(session.view_id) is session:
            del self._sessions[session.view_id]

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def navigate(
        self,
        view: EditorViewProtocol,
        target: TextRange,
        *,
        focus_editor: bool,
    ) -> ScrollVerificationSession:
        """Move the real selection to ``target``, scroll it to the top and verify."""
        self.cancel(view.view_id)
        view.set_selection(target)
        view.scroll_into_view(target, "start")
        if focus_editor:
            view.focus()
        return self.verify(view, target, focus_editor=focus_editor)

    def verify(
        self,
        view: EditorViewProtocol,
        target: TextRange,
        *,
        focus_editor: bool = False,
    ) -> ScrollVerificationSession:
        """Start a verification session for ``target``, replacing any prior one."""
        self.cancel(view.view_id)
        session = ScrollVerificationSession(
            view_id=view.view_id,
            target=target,
            focus_editor=focus_editor,
        )
        self._sessions[session.view_id] = session
        session.task = asyncio.create_task(self._run(view, session))
        session.task.add_done_callback(lambda _task: self._discard(session))
        return session

    # ------------------------------------------------------------------
    # Protocol
    # ------------------------------------------------------------------

    async def _run(self, view: EditorViewProtocol, session: ScrollVerificationSession) -> None:
        try:
            for attempt in range(self.policy.max_attempts):
                session.attempt = attempt
                await asyncio.sleep(self.delay_for(attempt))
                if session.cancelled:
                    return

                status = await self._measure(view, session, attempt)
                session.outcomes.append(status)

                if status in (VerificationStatus.STALE, VerificationStatus.GAVE_UP):
                    return
        except Exception:
            log.error(
                "scroll_verification_failed",
                view_id=session.view_id,
                attempt=session.attempt,
                exc_info=True,
            )

    async def _measure(
        self,
        view: EditorViewProtocol,
        session: ScrollVerificationSession,
        attempt: int,
    ) -> VerificationStatus:
        outcome: asyncio.Future[VerificationStatus] = asyncio.get_running_loop().create_future()

        def read() -> _Measurement | None:
            if session.cancelled:
                return None
            try:
                selection = view.get_selection()
                if selection != session.target:
                    return _Measurement(selection=selection, geometry=None)
                return _Measurement(selection=selection, geometry=view.measure_geometry(selection))
            except Exception as exc:
                if not outcome.done():
                    outcome.set_exception(exc)
                return None

        def write(measurement: _Measurement | None) -> None:
            if measurement is None or session.cancelled or outcome.done():
                return
            try:
                status = self._apply(view, session, attempt, measurement)
            except Exception as exc:
                outcome.set_exception(exc)
                return
            outcome.set_result(status)

        view.schedule_measurement(read, write)
        return await outcome

    def _apply(
        self,
        view: EditorViewProtocol,
        session: ScrollVerificationSession,
        attempt: int,
        measurement: _Measurement,
    ) -> VerificationStatus:
        # The user may have moved the caret between the read and write phases
        selection = view.get_selection()
        if measurement.selection != session.target or selection != session.target:
            log.debug("scroll_verification_stale", view_id=session.view_id, attempt=attempt)
            return VerificationStatus.STALE

        geometry = measurement.geometry
        if geometry is None:
            if attempt + 1 >= self.policy.max_attempts:
                log.warning(
                    "scroll_verification_gave_up",
                    view_id=session.view_id,
                    target_start=session.target.start,
                    target_end=session.target.end,
                    attempts=attempt + 1,
                )
                return VerificationStatus.GAVE_UP

            view.scroll_into_view(selection, "start")
            self._restore_focus(view, session)
            return VerificationStatus.RETRY

        offset = geometry.block_top_offset
        if not self.needs_correction(offset):
            return VerificationStatus.ALIGNED

        # Force the offset: the editor may decline to scroll a range it
        # already considers visible.
        target_scroll_top = max(geometry.viewport_top + offset, 0)
        if abs(view.get_scroll_top() - target_scroll_top) > _SCROLL_EPSILON_PX:
            view.set_scroll_top(target_scroll_top)

        view.scroll_into_view(selection, "start")
        self._restore_focus(view, session)
        log.debug(
            "scroll_verification_corrected",
            view_id=session.view_id,
            attempt=attempt,
            offset=offset,
        )
        return VerificationStatus.CORRECTED

    @staticmethod
    def _restore_focus(view: EditorViewProtocol, session: ScrollVerificationSession) -> None:
        if session.focus_editor:
            view.focus()
