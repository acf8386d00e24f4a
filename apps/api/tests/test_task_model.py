import pytest

from app.models.task import InvalidTransition, Task, TaskAlreadyStarted, TaskStatus


def _run_to(task: Task, *stages: TaskStatus) -> None:
    for s in stages:
        task.advance(s)


def test_new_task_is_pending():
    t = Task()
    assert t.status == TaskStatus.PENDING
    assert t.progress == 0
    assert t.result is None
    assert t.error is None
    assert t.created_at.tzinfo is not None


def test_happy_path_progress():
    t = Task()
    seen = []
    for s in (TaskStatus.EXTRACTING, TaskStatus.PROCESSING, TaskStatus.GENERATING):
        t.advance(s)
        seen.append(t.progress)
    t.complete({"questions": []})

    assert seen == [20, 40, 60]
    assert t.status == TaskStatus.COMPLETED
    assert t.progress == 100
    assert t.result == {"questions": []}


@pytest.mark.parametrize(
    "stages,target",
    [
        ((), TaskStatus.PROCESSING),
        ((), TaskStatus.GENERATING),
        ((TaskStatus.EXTRACTING,), TaskStatus.GENERATING),
        ((TaskStatus.EXTRACTING, TaskStatus.PROCESSING), TaskStatus.EXTRACTING),
    ],
)
def test_illegal_edges_rejected(stages, target):
    t = Task()
    _run_to(t, *stages)
    with pytest.raises(InvalidTransition):
        t.advance(target)


def test_pending_cannot_complete_or_fail_directly():
    t = Task()
    with pytest.raises(InvalidTransition):
        t.complete({})
    with pytest.raises(InvalidTransition):
        t.fail("boom")


def test_advance_refuses_terminal_status():
    t = Task()
    t.advance(TaskStatus.EXTRACTING)
    with pytest.raises(InvalidTransition):
        t.advance(TaskStatus.FAILED)


def test_failure_freezes_progress():
    t = Task()
    _run_to(t, TaskStatus.EXTRACTING, TaskStatus.PROCESSING)
    t.fail("Transcript too short")

    assert t.status == TaskStatus.FAILED
    assert t.progress == 40
    assert t.error == "Transcript too short"
    assert t.result is None


def test_terminal_task_is_immutable():
    t = Task()
    _run_to(t, TaskStatus.EXTRACTING, TaskStatus.PROCESSING, TaskStatus.GENERATING)
    t.complete({"questions": ["q"]})

    with pytest.raises(InvalidTransition):
        t.fail("late failure")
    with pytest.raises(InvalidTransition):
        t.complete({"questions": []})
    with pytest.raises(InvalidTransition):
        t.advance(TaskStatus.EXTRACTING)
    assert t.result == {"questions": ["q"]}


def test_claim_only_once():
    t = Task()
    t.claim()
    with pytest.raises(TaskAlreadyStarted):
        t.claim()


def test_claim_refused_once_running():
    t = Task()
    t.advance(TaskStatus.EXTRACTING)
    with pytest.raises(TaskAlreadyStarted):
        t.claim()


def test_snapshot_fields_by_status():
    t = Task()
    assert t.snapshot() == {"taskId": t.id, "status": "pending", "progress": 0}

    t.advance(TaskStatus.EXTRACTING)
    t.fail("No subtitles available for this video")
    snap = t.snapshot()
    assert snap["status"] == "failed"
    assert snap["error"] == "No subtitles available for this video"
    assert "result" not in snap

    done = Task()
    _run_to(done, TaskStatus.EXTRACTING, TaskStatus.PROCESSING, TaskStatus.GENERATING)
    done.complete({"questions": []})
    snap = done.snapshot()
    assert snap["progress"] == 100
    assert snap["result"] == {"questions": []}
    assert "error" not in snap


def test_ids_are_unique():
    assert len({Task().id for _ in range(200)}) == 200
