import logging

from pytest import fixture, mark, raises

from common.enums.post_run_action import PostRunAction
from common.enums.run_state import RunState
from lib.pc.runs.run_waiter import _RunProgress, get_run_state, wait_for_run_completion, wait_for_run_state

logger = logging.getLogger()

RUN_ID = 42

FAST = dict(interval=0.001, max_interval=0.01, timeout=5, stall_timeout=0.05, retry_wait=0)

FULL_LIFECYCLE = [
    "Initializing",
    "Running",
    "Stopping",
    "Before Collating Results",
    "Collating Results",
    "Before Creating Analysis Data",
    "Pending Creating Analysis Data",
    "Creating Analysis Data",
    "Finished",
]


class FakeController:
    """Serves run state labels in order, repeating the last one. Exceptions in the list are raised."""

    def __init__(self, labels):
        self.labels = list(labels)
        self.calls = 0
        self.run_ids = []

    def __call__(self, run_id):
        self.run_ids.append(run_id)
        self.calls += 1
        label = self.labels[min(self.calls, len(self.labels)) - 1]
        if isinstance(label, Exception):
            raise label
        return label


@fixture
def controller(request):
    return FakeController(request.param)


@mark.parametrize("controller", [FULL_LIFECYCLE], indirect=True)
def test_wait_for_run_state_reaches_finished(controller):
    state = wait_for_run_state(RUN_ID, controller, RunState.FINISHED, **FAST)
    assert state is RunState.FINISHED
    assert controller.calls == len(FULL_LIFECYCLE)
    assert set(controller.run_ids) == {RUN_ID}


@mark.parametrize("controller", [["", "", "Running", "Finished"]], indirect=True)
def test_wait_for_run_state_ignores_undefined_labels(controller):
    assert wait_for_run_state(RUN_ID, controller, RunState.FINISHED, **FAST) is RunState.FINISHED


@mark.parametrize("controller", [["Running", "Collating Results", "Failed Collating Results"]], indirect=True)
def test_failure_after_target_ends_wait(controller):
    state = wait_for_run_state(RUN_ID, controller, RunState.FINISHED, **FAST)
    assert state is RunState.FAILED_COLLATING_RESULTS
    assert state.has_failure


@mark.parametrize("controller", [["Running", "Canceled"]], indirect=True)
def test_canceled_ends_wait_without_failure(controller):
    state = wait_for_run_state(RUN_ID, controller, RunState.FINISHED, **FAST)
    assert state is RunState.CANCELED
    assert not state.has_failure


@mark.parametrize("controller", [["Running", "Initializing", "Collating Results"]], indirect=True)
def test_last_state_never_moves_backwards(controller):
    state = wait_for_run_state(RUN_ID, controller, RunState.COLLATING_RESULTS, **FAST)
    assert state is RunState.COLLATING_RESULTS


def test_run_progress_keeps_highest_state():
    progress = _RunProgress(RUN_ID, RunState.FINISHED, stall_timeout=60)
    assert not progress.update(RunState.RUNNING)
    assert not progress.update(RunState.INITIALIZING)
    assert progress.last_state is RunState.RUNNING
    assert progress.update(RunState.FINISHED)
    assert not progress.stalled


@mark.parametrize("controller", [["Running", "Before Collating Results"]], indirect=True)
def test_stalled_run_returns_parked_state(controller, caplog):
    with caplog.at_level(logging.WARNING):
        state = wait_for_run_state(RUN_ID, controller, RunState.FINISHED, **FAST)
    assert state is RunState.BEFORE_COLLATING_RESULTS
    assert controller.calls > 2
    assert "stopped from the controller side" in caplog.text


@mark.parametrize("controller", [["Running"]], indirect=True)
def test_wait_for_run_state_timeout(controller):
    with raises(TimeoutError, match="last state = 'Running'"):
        wait_for_run_state(RUN_ID, controller, RunState.FINISHED, **dict(FAST, timeout=0.1))


@mark.parametrize("controller", [[ConnectionError("reset"), TimeoutError("slow"), "Finished"]], indirect=True)
def test_get_run_state_retries_transient_errors(controller):
    assert get_run_state(RUN_ID, controller, attempts=3, retry_wait=0) is RunState.FINISHED
    assert controller.calls == 3


@mark.parametrize("controller", [[ConnectionError("reset")]], indirect=True)
def test_get_run_state_reraises_after_last_attempt(controller):
    with raises(ConnectionError):
        get_run_state(RUN_ID, controller, attempts=2, retry_wait=0)
    assert controller.calls == 2


@mark.parametrize("controller", [[KeyError("RunState")]], indirect=True)
def test_get_run_state_does_not_retry_other_errors(controller):
    with raises(KeyError):
        get_run_state(RUN_ID, controller, attempts=3, retry_wait=0)
    assert controller.calls == 1


@mark.parametrize("controller", [["Paused"]], indirect=True)
def test_get_run_state_unknown_label(controller, caplog):
    with caplog.at_level(logging.WARNING):
        assert get_run_state(RUN_ID, controller, attempts=1, retry_wait=0) is RunState.UNDEFINED
    assert "unrecognised run state 'Paused'" in caplog.text


@mark.parametrize(
    "controller, post_run_action, expected",
    [
        (
            ["Running", "Stopping", "Before Collating Results"],
            PostRunAction.DO_NOTHING,
            RunState.BEFORE_COLLATING_RESULTS,
        ),
        (FULL_LIFECYCLE, PostRunAction.COLLATE, RunState.BEFORE_CREATING_ANALYSIS_DATA),
        (FULL_LIFECYCLE, PostRunAction.COLLATE_AND_ANALYZE, RunState.FINISHED),
    ],
    indirect=["controller"],
)
def test_wait_for_run_completion_per_post_run_action(controller, post_run_action, expected):
    assert wait_for_run_completion(RUN_ID, controller, post_run_action, **FAST) is expected


@mark.parametrize("controller", [["Running", "Run Failure"]], indirect=True)
def test_wait_for_run_completion_logs_failure(controller, caplog):
    with caplog.at_level(logging.ERROR):
        state = wait_for_run_completion(RUN_ID, controller, **FAST)
    assert state is RunState.RUN_FAILURE
    assert "run ended with failure state 'Run Failure'" in caplog.text
