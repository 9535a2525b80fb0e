"""启动序列：按固定顺序执行各步骤，单步失败不影响后续步骤"""

import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from ..infrastructure.logging import log_event

BootStep = Tuple[str, Callable[[], Awaitable[Any]]]


@dataclass
class StepResult:
    ok: bool
    duration_ms: int
    value: Any = None
    error_message: Optional[str] = None


@dataclass
class BootSequenceResult:
    duration_ms: int
    steps: Dict[str, StepResult] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return all(step.ok for step in self.steps.values())


class BootSequence:
    """
    Run independent steps strictly in order and report each one.

    这是唯一一个有意把异常转换为结果的地方：
    发布集成出错不应阻止抓取记录新新闻。
    """

    def __init__(self, steps: List[BootStep]):
        self.steps = steps

    async def run(self) -> BootSequenceResult:
        started = time.monotonic()
        log_event("boot:start", steps=",".join(name for name, _ in self.steps))

        results: Dict[str, StepResult] = {}
        for name, step in self.steps:
            step_started = time.monotonic()
            try:
                value = await step()
            except Exception as exc:  # noqa: BLE001
                duration_ms = int((time.monotonic() - step_started) * 1000)
                results[name] = StepResult(ok=False, duration_ms=duration_ms, error_message=str(exc) or type(exc).__name__)
                log_event("boot:step:error", level="ERROR", step=name, duration_ms=duration_ms, error=str(exc))
                continue

            duration_ms = int((time.monotonic() - step_started) * 1000)
            results[name] = StepResult(ok=True, duration_ms=duration_ms, value=value)
            log_event("boot:step:done", step=name, duration_ms=duration_ms)

        result = BootSequenceResult(duration_ms=int((time.monotonic() - started) * 1000), steps=results)
        log_event("boot:done", duration_ms=result.duration_ms, ok=result.ok)
        return result
