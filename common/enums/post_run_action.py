from __future__ import annotations

from enum import Enum

from common.enums.run_state import RunState


class PostRunAction(Enum):
    DO_NOTHING = "Do Not Collate"
    COLLATE = "Collate Results"
    COLLATE_AND_ANALYZE = "Collate And Analyze"

    @property
    def completion_state(self) -> RunState:
        """State at which a run started with this action is considered complete"""
        return _COMPLETION_STATES[self]

    @classmethod
    def from_label(cls, label: str) -> PostRunAction:
        for action in cls:
            if action.value == label:
                return action
        raise ValueError(f"Unknown post run action '{label}'. Available: {[action.value for action in cls]}")


_COMPLETION_STATES = {
    PostRunAction.DO_NOTHING: RunState.BEFORE_COLLATING_RESULTS,
    PostRunAction.COLLATE: RunState.BEFORE_CREATING_ANALYSIS_DATA,
    PostRunAction.COLLATE_AND_ANALYZE: RunState.FINISHED,
}
