from __future__ import annotations

from enum import Enum
from typing import List


class RunState(Enum):
    """Lifecycle state of a performance test run, as reported by the test controller.

    Member values are the labels the controller puts on the wire.
    """

    # Order is significant: waiters compare states by rank to decide whether
    # a run has reached or passed a target state. Do not reorder.
    UNDEFINED = ""
    INITIALIZING = "Initializing"
    RUNNING = "Running"
    STOPPING = "Stopping"
    BEFORE_COLLATING_RESULTS = "Before Collating Results"
    COLLATING_RESULTS = "Collating Results"
    BEFORE_CREATING_ANALYSIS_DATA = "Before Creating Analysis Data"
    PENDING_CREATING_ANALYSIS_DATA = "Pending Creating Analysis Data"
    CREATING_ANALYSIS_DATA = "Creating Analysis Data"
    FINISHED = "Finished"
    FAILED_COLLATING_RESULTS = "Failed Collating Results"
    FAILED_CREATING_ANALYSIS_DATA = "Failed Creating Analysis Data"
    CANCELED = "Canceled"
    RUN_FAILURE = "Run Failure"

    @property
    def label(self) -> str:
        return self.value

    @property
    def rank(self) -> int:
        """Position of the state in the run lifecycle. UNDEFINED is 0."""
        return _RANKS[self]

    @property
    def has_failure(self) -> bool:
        return "fail" in self.value.lower()

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATES

    def is_before(self, other: RunState) -> bool:
        return self.rank < other.rank

    def has_reached(self, other: RunState) -> bool:
        return self.rank >= other.rank

    @classmethod
    def from_label(cls, label: str) -> RunState:
        """Returns the state carrying the given label, or UNDEFINED when nothing matches.

        Matching is exact and case-sensitive. An empty label resolves to UNDEFINED.
        """
        return _STATES_BY_LABEL.get(label, cls.UNDEFINED)

    @classmethod
    def list(cls) -> List[RunState]:
        return list(RUN_STATE_ORDER)

    @classmethod
    def list_terminal(cls) -> List[RunState]:
        return [state for state in RUN_STATE_ORDER if state in _TERMINAL_STATES]

    @classmethod
    def list_failures(cls) -> List[RunState]:
        return [state for state in RUN_STATE_ORDER if state.has_failure]


RUN_STATE_ORDER = (
    RunState.UNDEFINED,
    RunState.INITIALIZING,
    RunState.RUNNING,
    RunState.STOPPING,
    RunState.BEFORE_COLLATING_RESULTS,
    RunState.COLLATING_RESULTS,
    RunState.BEFORE_CREATING_ANALYSIS_DATA,
    RunState.PENDING_CREATING_ANALYSIS_DATA,
    RunState.CREATING_ANALYSIS_DATA,
    RunState.FINISHED,
    RunState.FAILED_COLLATING_RESULTS,
    RunState.FAILED_CREATING_ANALYSIS_DATA,
    RunState.CANCELED,
    RunState.RUN_FAILURE,
)

_RANKS = {state: rank for rank, state in enumerate(RUN_STATE_ORDER)}

# first declared state wins for a given label
_STATES_BY_LABEL = {}
for _state in RUN_STATE_ORDER:
    _STATES_BY_LABEL.setdefault(_state.label, _state)

_TERMINAL_STATES = frozenset(
    [
        RunState.FINISHED,
        RunState.FAILED_COLLATING_RESULTS,
        RunState.FAILED_CREATING_ANALYSIS_DATA,
        RunState.CANCELED,
        RunState.RUN_FAILURE,
    ]
)
