from typing import Optional
from dataclasses import dataclass, field
from dataclasses_json import dataclass_json, LetterCase, config

from common.enums.post_run_action import PostRunAction
from common.enums.run_state import RunState


@dataclass_json(letter_case=LetterCase.PASCAL)
@dataclass
class Run:
    """Run record as returned by the test controller's runs resource"""

    id: int = field(metadata=config(field_name="ID"))
    test_id: int = field(metadata=config(field_name="TestID"))
    test_instance_id: int = field(metadata=config(field_name="TestInstanceID"))
    post_run_action: str
    timeslot_id: int = field(metadata=config(field_name="TimeslotID"))
    vuds_mode: bool
    run_state: str
    duration: Optional[int] = field(default=None)
    run_sla_status: Optional[str] = field(default=None, metadata=config(field_name="RunSLAStatus"))

    @property
    def state(self) -> RunState:
        return RunState.from_label(self.run_state)

    @property
    def post_run_action_type(self) -> PostRunAction:
        return PostRunAction.from_label(self.post_run_action)
