import time
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class StepMetric:
    step: str
    start_time: float
    end_time: Optional[float] = None
    success: bool = False
    error: Optional[str] = None


@dataclass
class MetricsTracker:
    start_time: float = field(default_factory=time.time)
    steps: list[StepMetric] = field(default_factory=list)

    def start_step(self, step: str) -> StepMetric:
        metric = StepMetric(step=step, start_time=time.time())
        self.steps.append(metric)
        return metric

    def end_step(self, metric: StepMetric, success: bool, error: Optional[str] = None) -> None:
        metric.end_time = time.time()
        metric.success = success
        metric.error = error

    def get_summary(self) -> dict:
        successful = sum(1 for m in self.steps if m.success)
        return {
            "total_steps": len(self.steps),
            "successful": successful,
            "failed": len(self.steps) - successful,
            "distinct_steps": len({m.step for m in self.steps}),
            "total_time_seconds": time.time() - self.start_time,
            "per_step": [
                {
                    "step": m.step,
                    "time_seconds": round((m.end_time or time.time()) - m.start_time, 2),
                    "success": m.success,
                    "error": m.error,
                }
                for m in self.steps
            ],
        }

    def print_summary(self) -> None:
        s = self.get_summary()
        print(f"\n{'='*50}")
        print(f"ISDE WIZARD AUTOMATION - RUN SUMMARY")
        print(f"{'='*50}")
        print(f"Steps executed: {s['total_steps']} ({s['distinct_steps']} distinct)")
        print(f"Succeeded: {s['successful']}, failed: {s['failed']}")
        print(f"Total time: {s['total_time_seconds']:.1f}s")
        print(f"{'='*50}\n")
