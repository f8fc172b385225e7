"""
agent_trace.py — Lightweight audit log for generation runs
==========================================================
Every stage of a roadmap generation emits an AgentStep record.  The
RoadmapGeneratorAgent collects them into a RunTrace which is stored with the
course (courses.trace_json), so operators can tell a real roadmap from a
synthetic one and see which parse strategy recovered the model output.

Data model
----------
  AgentStep      One stage's contribution: timing, status, decisions, warnings.
  RunTrace       Full trace for a single generation run; ordered list of AgentSteps.

Key fields
----------
  AgentStep.status          "success" | "repaired" | "fallback" | "skipped"
  AgentStep.duration_ms     Wall-clock milliseconds for that stage
  AgentStep.decisions       Human-readable list of choices the stage made
  AgentStep.warnings        Any non-fatal issues detected
  RunTrace.mode             "mock" | "azure_openai"
  RunTrace.total_ms         End-to-end wall time
"""

from __future__ import annotations

import datetime
import time
import uuid
from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass
class AgentStep:
    """One stage inside a generation run."""
    agent_id:       str
    agent_name:     str
    start_ms:       float            # ms relative to run start
    duration_ms:    float
    status:         str              # "success" | "repaired" | "fallback" | "skipped"
    input_summary:  str
    output_summary: str
    decisions:      list[str] = field(default_factory=list)
    warnings:       list[str] = field(default_factory=list)
    detail:         dict[str, Any] = field(default_factory=dict)


@dataclass
class RunTrace:
    """Full trace for a single generation run."""
    run_id:     str
    topic:      str
    timestamp:  str
    mode:       str
    total_ms:   float = 0.0
    steps:      list[AgentStep] = field(default_factory=list)
    _t0:        float = field(default_factory=time.perf_counter, repr=False)

    @classmethod
    def start(cls, topic: str, mode: str) -> "RunTrace":
        return cls(
            run_id    = str(uuid.uuid4())[:8].upper(),
            topic     = topic,
            timestamp = datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            mode      = mode,
        )

    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self._t0) * 1000

    def append(self, step: AgentStep) -> None:
        self.steps.append(step)
        self.total_ms = self.elapsed_ms()

    def record(self, agent_id: str, agent_name: str, started_ms: float, **kwargs: Any) -> AgentStep:
        """Build and append a step that began at *started_ms* and ends now."""
        step = AgentStep(
            agent_id    = agent_id,
            agent_name  = agent_name,
            start_ms    = round(started_ms, 1),
            duration_ms = round(self.elapsed_ms() - started_ms, 1),
            **kwargs,
        )
        self.append(step)
        return step

    @property
    def degraded(self) -> bool:
        """True when any step fell back to synthetic output."""
        return any(s.status == "fallback" for s in self.steps)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data.pop("_t0", None)
        return data
