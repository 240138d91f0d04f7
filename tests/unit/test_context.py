import pytest

from nexusflow.context import ExecutionContext


def test_merge_and_snapshot():
    ctx = ExecutionContext()
    ctx.merge("fetch", {"rows": 3})

    snap = ctx.snapshot()
    assert dict(snap) == {"fetch": {"rows": 3}}
    assert "fetch" in ctx
    assert len(ctx) == 1


def test_duplicate_names_last_write_wins():
    ctx = ExecutionContext()
    ctx.merge("step", 1)
    ctx.merge("step", 2)
    assert dict(ctx.snapshot()) == {"step": 2}


def test_snapshot_is_isolated_from_later_changes():
    ctx = ExecutionContext()
    ctx.merge("a", {"items": [1]})
    snap = ctx.snapshot()

    ctx.merge("b", True)
    snap["a"]["items"].append(2)

    assert "b" not in snap
    assert dict(ctx.snapshot()) == {"a": {"items": [1]}, "b": True}
    with pytest.raises(TypeError):
        snap["c"] = 1
