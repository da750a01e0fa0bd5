from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import List, Protocol

from utils.logging_setup import init_logging, run_logger


@dataclass
class RunContext:
    """State handed from step to step.

    ``companies`` and ``stations`` carry fixture entries, ``documents`` the
    index documents of a sync batch; counters and skip reports go in ``meta``.
    """

    companies: list = field(default_factory=list)
    stations: list = field(default_factory=list)
    documents: list = field(default_factory=list)
    meta: dict = field(default_factory=dict)
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])


class Step(Protocol):
    def run(self, ctx: RunContext) -> RunContext:
        ...


class Pipeline:
    def __init__(self, steps: List[Step]):
        self.steps = steps

    def run(self, ctx: RunContext) -> RunContext:
        init_logging()
        log = run_logger(__name__, ctx.run_id)
        for step in self.steps:
            name = type(step).__name__
            started = time.time()
            try:
                ctx = step.run(ctx)
            except Exception as exc:
                log.error(
                    "Step %s failed",
                    name,
                    extra={
                        "step": name,
                        "status": "failed",
                        "error": str(exc),
                        "duration_ms": int((time.time() - started) * 1000),
                    },
                )
                raise
            log.debug(
                "Step %s done",
                name,
                extra={"step": name, "status": "ok", "duration_ms": int((time.time() - started) * 1000)},
            )
        return ctx
