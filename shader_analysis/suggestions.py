"""Rule table turning per-stage metrics into optimization suggestions."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List

from schemas.metrics_ir import OptimizationSuggestion, PerformanceMetrics, Priority


WORK_REGISTER_LIMIT = 32
SIXTEEN_BIT_TARGET_PCT = 50.0


@dataclass(frozen=True)
class SuggestionRule:
    rule_id: str
    applies: Callable[[PerformanceMetrics, PerformanceMetrics], bool]
    priority: Priority
    category: str
    issue: str
    suggestion: str
    expected_impact: str

    def build(self) -> OptimizationSuggestion:
        return OptimizationSuggestion(
            priority=self.priority,
            category=self.category,
            issue=self.issue,
            suggestion=self.suggestion,
            expected_impact=self.expected_impact,
        )


# Evaluated top to bottom; every matching rule contributes one suggestion.
SUGGESTION_RULES: List[SuggestionRule] = [
    SuggestionRule(
        rule_id="work_registers",
        applies=lambda vs, fs: vs.work_registers > WORK_REGISTER_LIMIT
        or fs.work_registers > WORK_REGISTER_LIMIT,
        priority=Priority.HIGH,
        category="Register optimization",
        issue="Work register usage is too high",
        suggestion=(
            "Reduce the number of live local variables, merge computation steps "
            "and use lower precision types where possible."
        ),
        expected_impact="Lower register pressure and better parallel occupancy",
    ),
    SuggestionRule(
        rule_id="sixteen_bit_arithmetic",
        applies=lambda vs, fs: fs.sixteen_bit_arithmetic_percentage < SIXTEEN_BIT_TARGET_PCT,
        priority=Priority.MEDIUM,
        category="Precision optimization",
        issue="Low share of 16-bit arithmetic",
        suggestion=(
            "Move suitable variables from highp to mediump, especially color "
            "and texture coordinate math."
        ),
        expected_impact="Faster arithmetic and lower power consumption",
    ),
    SuggestionRule(
        rule_id="stack_spilling",
        applies=lambda vs, fs: vs.has_stack_spilling or fs.has_stack_spilling,
        priority=Priority.CRITICAL,
        category="Memory optimization",
        issue="Stack spilling detected",
        suggestion=(
            "Severe performance problem: reduce the number of variables, lower "
            "precision or simplify the shader logic."
        ),
        expected_impact="Avoids expensive memory round trips and gives a large speedup",
    ),
    SuggestionRule(
        rule_id="bound_arithmetic",
        applies=lambda vs, fs: fs.bottleneck_unit == "A",
        priority=Priority.HIGH,
        category="Arithmetic optimization",
        issue="Arithmetic unit is the bottleneck",
        suggestion=(
            "Cut down on complex math, avoid inverse trigonometric functions and "
            "consider lookup tables or approximations."
        ),
        expected_impact="Less arithmetic unit pressure and faster execution",
    ),
    SuggestionRule(
        rule_id="bound_texture",
        applies=lambda vs, fs: fs.bottleneck_unit == "T",
        priority=Priority.HIGH,
        category="Texture optimization",
        issue="Texture sampling is the bottleneck",
        suggestion=(
            "Sample fewer textures, avoid sampling inside branches and consider "
            "packing textures together."
        ),
        expected_impact="Less texture unit pressure and better texture cache hit rate",
    ),
    SuggestionRule(
        rule_id="bound_load_store",
        applies=lambda vs, fs: fs.bottleneck_unit == "LS",
        priority=Priority.MEDIUM,
        category="Memory-access optimization",
        issue="Load/store is the bottleneck",
        suggestion="Pass fewer varyings and tighten the uniform buffer layout.",
        expected_impact="More efficient memory access",
    ),
    SuggestionRule(
        rule_id="late_zs",
        applies=lambda vs, fs: fs.uses_late_zs_test or fs.uses_late_zs_update,
        priority=Priority.HIGH,
        category="Depth-test optimization",
        issue="Late ZS testing is in use",
        suggestion=(
            "Avoid writing depth or using discard in the fragment shader; both "
            "disable early-Z."
        ),
        expected_impact="Early-Z stays enabled and overdraw drops",
    ),
    SuggestionRule(
        rule_id="side_effects",
        applies=lambda vs, fs: fs.has_side_effects,
        priority=Priority.MEDIUM,
        category="Side-effect optimization",
        issue="Shader has side effects",
        suggestion="Avoid image stores, atomics and other operations with side effects.",
        expected_impact="Better parallel execution",
    ),
]


def generate_suggestions(
    vertex_metrics: PerformanceMetrics,
    fragment_metrics: PerformanceMetrics,
) -> List[OptimizationSuggestion]:
    return [
        rule.build()
        for rule in SUGGESTION_RULES
        if rule.applies(vertex_metrics, fragment_metrics)
    ]


def rank_suggestions(suggestions: List[OptimizationSuggestion]) -> List[OptimizationSuggestion]:
    """Most severe first; rule order is kept within a priority."""
    return sorted(suggestions, key=lambda s: s.priority, reverse=True)
