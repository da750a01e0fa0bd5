from __future__ import annotations

import logging

import pytest

from pipelines.runner import Pipeline, RunContext


class _Count:
    def run(self, ctx: RunContext) -> RunContext:
        ctx.meta["count"] = ctx.meta.get("count", 0) + 1
        return ctx


class _Boom:
    def run(self, ctx: RunContext) -> RunContext:
        raise RuntimeError("boom")


def test_steps_run_in_order_on_one_context():
    ctx = Pipeline([_Count(), _Count()]).run(RunContext())
    assert ctx.meta["count"] == 2


def test_failing_step_is_logged_with_run_id_and_reraised(caplog):
    ctx = RunContext(run_id="run-1")
    caplog.set_level(logging.ERROR, logger="pipelines.runner")

    with pytest.raises(RuntimeError):
        Pipeline([_Count(), _Boom(), _Count()]).run(ctx)

    assert ctx.meta["count"] == 1
    record = caplog.records[-1]
    assert record.step == "_Boom"
    assert record.status == "failed"
    assert record.run_id == "run-1"
    assert record.error == "boom"
