from __future__ import annotations

from enum import IntEnum
from typing import List

from pydantic import BaseModel, Field


class Priority(IntEnum):
    LOW = 0
    MEDIUM = 1
    HIGH = 2
    CRITICAL = 3

    @property
    def label(self) -> str:
        return self.name.capitalize()


class PerformanceMetrics(BaseModel):
    """Per-stage numbers scraped from a malioc report.

    Zero / False / "" mean "not found in the report"; the report format does
    not distinguish that from a reported zero.
    """
    work_registers: int = 0
    uniform_registers: int = 0
    sixteen_bit_arithmetic_percentage: float = 0.0
    total_instruction_cycles: float = 0.0
    shortest_path_cycles: float = 0.0
    longest_path_cycles: float = 0.0
    bottleneck_unit: str = ""
    gpu_architecture: str = ""

    has_uniform_computation: bool = False
    has_side_effects: bool = False
    modifies_coverage: bool = False
    uses_late_zs_test: bool = False
    uses_late_zs_update: bool = False
    reads_color_buffer: bool = False
    has_stack_spilling: bool = False


class OptimizationSuggestion(BaseModel):
    priority: Priority = Priority.LOW
    category: str = ""
    issue: str = ""
    suggestion: str = ""
    expected_impact: str = ""


class StageAnalysis(BaseModel):
    """Everything one vertex/fragment analysis run produced."""
    label: str = ""
    vertex_metrics: PerformanceMetrics = Field(default_factory=PerformanceMetrics)
    fragment_metrics: PerformanceMetrics = Field(default_factory=PerformanceMetrics)
    suggestions: List[OptimizationSuggestion] = Field(default_factory=list)
    raw_vertex_result: str = ""
    raw_fragment_result: str = ""
    vertex_ok: bool = False
    fragment_ok: bool = False
    vertex_runtime_seconds: float = 0.0
    fragment_runtime_seconds: float = 0.0
    report: str = ""
