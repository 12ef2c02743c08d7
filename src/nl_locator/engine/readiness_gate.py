"""
Readiness Gate - Wait until a resolved element is safe to interact with.

Per-call state machine:

    SEARCHING -> ATTACHED -> VISIBLE -> STABLE -> ANIMATIONS_SETTLED
              -> INTERACTABLE -> READY

Any failed check (or any exception) before the deadline moves to RETRY,
pauses briefly, and starts again from SEARCHING with a fresh lookup, so a
transient ambiguity during a page transition can resolve itself. When the
deadline passes the gate ends in TIMED_OUT and raises.

Also provides wait_for_dynamic_content(), a looser page-level wait that is
best-effort and never raises.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, List, Optional, TYPE_CHECKING
import logging

from nl_locator.config.settings import DynamicContentSettings, LocatorSettings
from nl_locator.exceptions.locator import ElementNotInteractableError, ReadinessTimeoutError
from nl_locator.utils.deadline import Deadline, with_soft_timeout

if TYPE_CHECKING:
    from nl_locator.engine.element_resolver import Candidate
    from nl_locator.interfaces.backend import BoundingBox, IQueryBackend, IQueryHandle

logger = logging.getLogger(__name__)


# Resolves once every animation attached to the document has finished
ANIMATIONS_JS = """
() => Promise.all(document.getAnimations().map(a => a.finished)).then(() => true)
"""

# True when the topmost node at the element's center is the element or inside it
HIT_TEST_JS = """
el => {
    const rect = el.getBoundingClientRect();
    const x = rect.left + rect.width / 2;
    const y = rect.top + rect.height / 2;
    const top = document.elementFromPoint(x, y);
    return !!top && (top === el || el.contains(top));
}
"""

# Resolves true after quietMs without mutations, false when ceilingMs is hit first
DOM_QUIET_JS = """
([quietMs, ceilingMs]) => new Promise(resolve => {
    let timer = null;
    let cap = null;
    const observer = new MutationObserver(() => {
        clearTimeout(timer);
        timer = setTimeout(() => done(true), quietMs);
    });
    const done = (settled) => {
        observer.disconnect();
        clearTimeout(timer);
        clearTimeout(cap);
        resolve(settled);
    };
    observer.observe(document.body || document.documentElement, {
        childList: true,
        subtree: true,
        attributes: true,
    });
    timer = setTimeout(() => done(true), quietMs);
    cap = setTimeout(() => done(false), ceilingMs);
})
"""


class ReadinessState(Enum):
    """States of one wait-until-ready call."""
    SEARCHING = "searching"
    ATTACHED = "attached"
    VISIBLE = "visible"
    STABLE = "stable"
    ANIMATIONS_SETTLED = "animations_settled"
    INTERACTABLE = "interactable"
    READY = "ready"
    RETRY = "retry"
    TIMED_OUT = "timed_out"


class StabilityOutcome(Enum):
    """How a stability check ended."""
    STABLE = "stable"
    DISAPPEARED = "disappeared"
    EXPIRED = "expired"


@dataclass
class ReadinessRecord:
    """
    Ephemeral state of one wait loop. Never shared between calls.

    Attributes:
        description: What is being waited for (for logs and errors)
        deadline: Captured deadline
        state: Current state
        attempts: Number of SEARCHING entries
        last_box: Last polled bounding box
        stable_ticks: Consecutive polls without movement
        last_error: Message of the last failure
        not_interactable_reason: Set when the last attempt failed the
            interactability check
        history: Every state entered, in order
    """
    description: str
    deadline: Deadline
    state: ReadinessState = ReadinessState.SEARCHING
    attempts: int = 0
    last_box: Optional["BoundingBox"] = None
    stable_ticks: int = 0
    last_error: Optional[str] = None
    not_interactable_reason: Optional[str] = None
    history: List[ReadinessState] = field(default_factory=list)

    def transition(self, state: ReadinessState) -> None:
        self.state = state
        self.history.append(state)
        logger.debug(f"[{self.description}] attempt {self.attempts}: {state.value}")


def box_is_stable(previous: "BoundingBox", current: "BoundingBox", threshold_px: float = 1.0) -> bool:
    """True when x, y, width and height all moved by less than threshold_px."""
    return all(
        abs(current[key] - previous[key]) < threshold_px
        for key in ("x", "y", "width", "height")
    )


class ReadinessGate:
    """
    Polls a resolved candidate until it is attached, visible, stable,
    free of running animations and not covered by another element.

    Usage:
        gate = ReadinessGate()
        candidate = await gate.wait_until_ready(
            backend, lambda: resolver.locate(backend, "submit"), "submit",
        )
    """

    def __init__(
        self,
        settings: Optional[LocatorSettings] = None,
        dynamic_settings: Optional[DynamicContentSettings] = None,
    ):
        self._settings = settings or LocatorSettings()
        self._dynamic = dynamic_settings or DynamicContentSettings()

    @property
    def settings(self) -> LocatorSettings:
        return self._settings

    async def wait_until_ready(
        self,
        backend: "IQueryBackend",
        locate: Callable[[], Awaitable["Candidate"]],
        description: str,
        timeout_ms: Optional[int] = None,
        wait_for_stable: Optional[bool] = None,
        wait_for_animations: Optional[bool] = None,
    ) -> "Candidate":
        """
        Re-run a lookup until its candidate is ready, or the deadline passes.

        Args:
            backend: Page backend (used for page-level animation polling)
            locate: Zero-argument coroutine factory performing one fresh lookup
            description: Human-readable target for logs and errors
            timeout_ms: Deadline (defaults to settings.default_timeout_ms)
            wait_for_stable: Run the stability check (defaults to settings)
            wait_for_animations: Run the animation check (defaults to settings)

        Returns:
            The ready candidate

        Raises:
            ElementNotInteractableError: Last attempt resolved the element but it
                was disabled or covered
            ReadinessTimeoutError: Any other failure to become ready in time
        """
        s = self._settings
        timeout = timeout_ms if timeout_ms is not None else s.default_timeout_ms
        check_stable = s.wait_for_stable if wait_for_stable is None else wait_for_stable
        check_animations = s.wait_for_animations if wait_for_animations is None else wait_for_animations

        record = ReadinessRecord(description=description, deadline=Deadline(timeout))

        while not record.deadline.expired:
            record.attempts += 1
            record.transition(ReadinessState.SEARCHING)

            try:
                candidate = await locate()
                if await self._advance(backend, candidate, record, check_stable, check_animations):
                    record.transition(ReadinessState.READY)
                    logger.info(
                        f"READY '{description}' after {record.attempts} attempt(s) "
                        f"({record.deadline.elapsed_ms:.0f}ms)"
                    )
                    return candidate
            except Exception as e:
                record.last_error = str(e)
                record.not_interactable_reason = None
                logger.debug(f"[{description}] attempt {record.attempts} failed: {e}")

            record.transition(ReadinessState.RETRY)
            await record.deadline.sleep(s.retry_pause_ms)

        record.transition(ReadinessState.TIMED_OUT)
        logger.warning(f"Gave up waiting for '{description}' after {record.attempts} attempt(s)")

        if record.not_interactable_reason:
            raise ElementNotInteractableError(
                f"Element '{description}' never became interactable: {record.not_interactable_reason}",
                description=description,
                timeout_ms=timeout,
                attempts=record.attempts,
                reason=record.not_interactable_reason,
            )
        raise ReadinessTimeoutError(
            f"Timed out after {timeout}ms waiting for '{description}'",
            description=description,
            timeout_ms=timeout,
            attempts=record.attempts,
            last_error=record.last_error,
        )

    async def _advance(
        self,
        backend: "IQueryBackend",
        candidate: "Candidate",
        record: ReadinessRecord,
        check_stable: bool,
        check_animations: bool,
    ) -> bool:
        """Walk one candidate through ATTACHED..INTERACTABLE. False means retry."""
        handle = candidate.handle
        deadline = record.deadline

        record.transition(ReadinessState.ATTACHED)
        await handle.wait_for("attached", timeout=deadline.cap())

        record.transition(ReadinessState.VISIBLE)
        await handle.wait_for("visible", timeout=deadline.cap())

        if check_stable:
            record.transition(ReadinessState.STABLE)
            outcome = await self.wait_for_stability(handle, record)
            if outcome is not StabilityOutcome.STABLE:
                record.last_error = f"element not stable ({outcome.value})"
                record.not_interactable_reason = None
                return False

        if check_animations:
            record.transition(ReadinessState.ANIMATIONS_SETTLED)
            await self.wait_for_animations(backend, deadline)

        record.transition(ReadinessState.INTERACTABLE)
        reason = await self.check_interactable(handle)
        if reason is not None:
            record.last_error = reason
            record.not_interactable_reason = reason
            return False

        return True

    async def wait_for_stability(self, handle: "IQueryHandle", record: ReadinessRecord) -> StabilityOutcome:
        """
        Poll the bounding box until it holds still for the required number
        of consecutive polls.

        A missing box (element detached or hidden) ends the check without
        error so the caller can look the element up again.
        """
        s = self._settings
        deadline = record.deadline
        record.stable_ticks = 0

        try:
            previous = await handle.bounding_box()
        except Exception as e:
            logger.debug(f"Bounding box unavailable: {e}")
            return StabilityOutcome.DISAPPEARED
        if previous is None:
            return StabilityOutcome.DISAPPEARED
        record.last_box = previous

        while record.stable_ticks < s.stable_checks_required:
            if deadline.expired:
                return StabilityOutcome.EXPIRED
            await deadline.sleep(s.poll_interval_ms)

            try:
                current = await handle.bounding_box()
            except Exception as e:
                logger.debug(f"Bounding box unavailable: {e}")
                return StabilityOutcome.DISAPPEARED
            if current is None:
                return StabilityOutcome.DISAPPEARED

            if box_is_stable(previous, current, s.stability_threshold_px):
                record.stable_ticks += 1
            else:
                record.stable_ticks = 0

            previous = current
            record.last_box = current

        return StabilityOutcome.STABLE

    async def wait_for_animations(self, backend: "IQueryBackend", deadline: Deadline) -> None:
        """
        Wait for document animations to finish, then a short settle delay.

        Soft: a backend that cannot report animations counts as settled, and
        hitting the ceiling only logs.
        """
        s = self._settings
        try:
            finished = await with_soft_timeout(
                backend.evaluate(ANIMATIONS_JS),
                deadline.cap(s.animation_ceiling_ms),
            )
        except Exception as e:
            logger.debug(f"Animation state unavailable, treating as settled: {e}")
            return

        if finished is None:
            logger.debug("Animations still running at ceiling, continuing")
        await deadline.sleep(s.animation_settle_ms)

    async def check_interactable(self, handle: "IQueryHandle") -> Optional[str]:
        """
        Check visibility, enabled state and occlusion.

        Returns:
            None when interactable, otherwise the reason it is not
        """
        if not await handle.is_visible():
            return "not visible"
        if not await handle.is_enabled():
            return "disabled"
        if not await handle.bounding_box():
            return "no bounding box"
        if not await handle.evaluate(HIT_TEST_JS):
            return "covered by another element"
        return None

    async def wait_for_dynamic_content(
        self,
        backend: "IQueryBackend",
        timeout_ms: Optional[int] = None,
        load_state: Optional[str] = None,
        selector: Optional[str] = None,
    ) -> bool:
        """
        Wait for a page to finish loading and settle. Best-effort, never raises.

        Steps: load state, optional selector, bounded network idle, then
        DOM mutation quiescence (quiet window, capped by a ceiling).

        Args:
            backend: Page backend
            timeout_ms: Overall budget (defaults to settings.default_timeout_ms)
            load_state: Load state to wait for first
            selector: Optional selector that must become visible

        Returns:
            True if the page settled, False if any step gave up
        """
        d = self._dynamic
        deadline = Deadline(timeout_ms if timeout_ms is not None else self._settings.default_timeout_ms)
        state = load_state or d.load_state

        try:
            await backend.wait_for_load_state(state, timeout=deadline.cap())
            if selector:
                await backend.wait_for_selector(selector, state="visible", timeout=deadline.cap())
        except Exception as e:
            logger.warning(f"Dynamic content wait timeout: {e}")
            return False

        try:
            await backend.wait_for_load_state("networkidle", timeout=deadline.cap(d.network_idle_cap_ms))
        except Exception as e:
            logger.debug(f"Network did not go idle: {e}")

        ceiling = deadline.cap(d.dom_ceiling_ms)
        try:
            settled = await with_soft_timeout(
                backend.evaluate(DOM_QUIET_JS, [d.dom_quiet_ms, ceiling]),
                ceiling + d.dom_quiet_ms,
            )
        except Exception as e:
            logger.debug(f"DOM observation failed: {e}")
            return False

        if not settled:
            logger.warning(f"DOM still changing after {ceiling}ms, continuing")
            return False
        return True
