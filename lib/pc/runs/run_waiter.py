import logging
import time
from typing import Callable, Optional

from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_fixed
from waiting import wait, TimeoutExpired

from common.enums.post_run_action import PostRunAction
from common.enums.run_state import RunState
from utils.timeout_manager import TimeoutManager

logger = logging.getLogger(__name__)

# States the controller parks a run in until someone asks it to go on.
# A run that stays here was most likely stopped from the controller side
# or ran out of its timeslot.
STALL_STATES = (RunState.BEFORE_COLLATING_RESULTS, RunState.BEFORE_CREATING_ANALYSIS_DATA)

RunStateFetcher = Callable[[int], str]


def get_run_state(
    run_id: int,
    fetch_run_state: RunStateFetcher,
    attempts: int = TimeoutManager.run_state_fetch_attempts,
    retry_wait: float = TimeoutManager.run_state_fetch_retry_wait,
) -> RunState:
    """Fetches the current state label of a run and maps it to a RunState

    Args:
        run_id (int): run ID on the test controller
        fetch_run_state (Callable[[int], str]): returns the controller's state label for a run ID
        attempts (int, optional): attempts on ConnectionError / TimeoutError raised by the fetcher.
        retry_wait (float, optional): seconds between attempts.

    Returns:
        RunState: mapped state, UNDEFINED when the label is not recognised
    """
    retryer = Retrying(
        retry=retry_if_exception_type((ConnectionError, TimeoutError)),
        stop=stop_after_attempt(attempts),
        wait=wait_fixed(retry_wait),
        reraise=True,
    )
    label = retryer(fetch_run_state, run_id)
    state = RunState.from_label(label)
    if state == RunState.UNDEFINED and label:
        logger.warning(f"RunID: {run_id} - unrecognised run state '{label}'")
    return state


class _RunProgress:
    """Highest state seen so far for one run, plus how long it has sat in a stall state"""

    def __init__(self, run_id: int, completion_state: RunState, stall_timeout: float):
        self.run_id = run_id
        self.completion_state = completion_state
        self.stall_timeout = stall_timeout
        self.last_state = RunState.UNDEFINED
        self.stalled = False
        self._stall_started_at: Optional[float] = None

    def update(self, current_state: RunState) -> bool:
        """Records a polled state. Returns True once waiting should stop."""
        logger.debug(f"RunID: {self.run_id} - polled state = '{current_state.label}'")
        if self.last_state.is_before(current_state):
            self.last_state = current_state
            logger.info(f"RunID: {self.run_id} - State = {current_state.label}")

        if self.last_state.has_reached(self.completion_state):
            return True

        if current_state in STALL_STATES:
            now = time.monotonic()
            if self._stall_started_at is None:
                self._stall_started_at = now
            elif now - self._stall_started_at > self.stall_timeout:
                self.stalled = True
                logger.warning(
                    f"RunID: {self.run_id} - stopped from the controller side with state = {current_state.label}"
                )
                return True
        else:
            self._stall_started_at = None
        return False


def wait_for_run_state(
    run_id: int,
    fetch_run_state: RunStateFetcher,
    completion_state: RunState,
    interval: float = TimeoutManager.run_state_poll_interval,
    timeout: float = TimeoutManager.run_completion_timeout,
    stall_timeout: float = TimeoutManager.run_stall_timeout,
    max_interval: float = TimeoutManager.run_state_max_poll_interval,
    attempts: int = TimeoutManager.run_state_fetch_attempts,
    retry_wait: float = TimeoutManager.run_state_fetch_retry_wait,
) -> RunState:
    """Polls a run until it reaches or passes completion_state

    A state ranked after completion_state (a failure or cancel after FINISHED, for
    example) also ends the wait. A run parked in one of STALL_STATES for more than
    stall_timeout seconds ends the wait as well.

    Args:
        run_id (int): run ID on the test controller
        fetch_run_state (Callable[[int], str]): returns the controller's state label for a run ID
        completion_state (RunState): state to wait for
        interval (float, optional): first sleep between polls. Doubles each poll up to max_interval.
        timeout (float, optional): seconds before TimeoutError is raised
        stall_timeout (float, optional): seconds a run may stay in a stall state
        max_interval (float, optional): longest sleep between polls
        attempts (int, optional): fetch attempts per poll on transient errors
        retry_wait (float, optional): seconds between fetch attempts

    Raises:
        TimeoutError: completion_state was not reached in time

    Returns:
        RunState: highest-ranked state observed
    """
    progress = _RunProgress(run_id, completion_state, stall_timeout)
    logger.info(f"RunID: {run_id} - waiting for state '{completion_state.label}', timeout {timeout}s")
    try:
        wait(
            lambda: progress.update(
                get_run_state(run_id, fetch_run_state, attempts=attempts, retry_wait=retry_wait)
            ),
            timeout_seconds=timeout,
            sleep_seconds=(interval, max(interval, max_interval)),
            waiting_for=f"run {run_id} to reach state '{completion_state.label}'",
        )
    except TimeoutExpired:
        message = (
            f"RunID: {run_id} - timeout {timeout}s expired waiting for '{completion_state.label}',"
            f" last state = '{progress.last_state.label}'"
        )
        logger.error(message)
        raise TimeoutError(message)

    return progress.last_state


def wait_for_run_completion(
    run_id: int,
    fetch_run_state: RunStateFetcher,
    post_run_action: PostRunAction = PostRunAction.COLLATE_AND_ANALYZE,
    **kwargs,
) -> RunState:
    """Waits until the run reaches the state its post run action finishes at.

    Extra keyword arguments go to wait_for_run_state.
    """
    last_state = wait_for_run_state(
        run_id,
        fetch_run_state,
        completion_state=post_run_action.completion_state,
        **kwargs,
    )
    if last_state.has_failure:
        logger.error(f"RunID: {run_id} - run ended with failure state '{last_state.label}'")
    else:
        logger.info(f"RunID: {run_id} - run ended with state '{last_state.label}'")
    return last_state
