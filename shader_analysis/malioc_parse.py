"""Best-effort scraper for Mali Offline Compiler (malioc) reports.

Each metric is an independent labelled-value rule applied to the whole report
text, so fields may appear in any order, be missing, or be surrounded by
unrelated diagnostics.  A rule that does not match leaves its field at the
default; nothing here raises on malformed input.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from schemas.metrics_ir import PerformanceMetrics


# ---------------------------------------------------------------------------
# Rule tables
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class _ValueRule:
    field_name: str
    pattern: re.Pattern
    convert: Callable[[str], object]


_NUMBER = r"(\d+(?:\.\d+)?)"

_VALUE_RULES: List[_ValueRule] = [
    _ValueRule("work_registers", re.compile(r"Work registers\s*:\s*(\d+)", re.IGNORECASE), int),
    _ValueRule("uniform_registers", re.compile(r"Uniform registers\s*:\s*(\d+)", re.IGNORECASE), int),
    _ValueRule(
        "sixteen_bit_arithmetic_percentage",
        re.compile(r"16-bit arithmetic\s*:\s*" + _NUMBER + r"\s*%", re.IGNORECASE),
        float,
    ),
    _ValueRule(
        "total_instruction_cycles",
        re.compile(r"Total instruction cycles\s*:\s*" + _NUMBER, re.IGNORECASE),
        float,
    ),
    _ValueRule(
        "shortest_path_cycles",
        re.compile(r"Shortest path cycles\s*:\s*" + _NUMBER, re.IGNORECASE),
        float,
    ),
    _ValueRule(
        "longest_path_cycles",
        re.compile(r"Longest path cycles\s*:\s*" + _NUMBER, re.IGNORECASE),
        float,
    ),
    _ValueRule("bottleneck_unit", re.compile(r"Bound\s*:\s*([A-Z]+)", re.IGNORECASE), str.upper),
]

# Literal, case-sensitive "<Property>: true" flags.
_PROPERTY_FLAGS: Dict[str, str] = {
    "has_uniform_computation": "Has uniform computation: true",
    "has_side_effects": "Has side-effects: true",
    "modifies_coverage": "Modifies coverage: true",
    "uses_late_zs_test": "Uses late ZS test: true",
    "uses_late_zs_update": "Uses late ZS update: true",
    "reads_color_buffer": "Reads color buffer: true",
}

# First match wins, in this order.
GPU_ARCHITECTURES: Tuple[str, ...] = ("Bifrost", "Valhall", "Midgard")

_STACK_SPILLING = "Stack spilling"
_STACK_SPILLING_FALSE = "Stack spilling: false"


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

def _match_value(rule: _ValueRule, text: str) -> Optional[object]:
    match = rule.pattern.search(text)
    if not match:
        return None
    try:
        return rule.convert(match.group(1))
    except ValueError:
        return None


def detect_stack_spilling(text: str) -> bool:
    """Flag spilling unless the report explicitly says ``Stack spilling: false``.

    Any other mention of "Stack spilling" (including unrelated prose) counts.
    """
    return _STACK_SPILLING in text and _STACK_SPILLING_FALSE not in text


def detect_gpu_architecture(text: str) -> str:
    for arch in GPU_ARCHITECTURES:
        if arch in text:
            return arch
    return ""


def extract_metrics(report_text: Optional[str]) -> PerformanceMetrics:
    """Scrape one stage's malioc output into a ``PerformanceMetrics`` record."""
    metrics = PerformanceMetrics()
    if not report_text:
        return metrics

    for rule in _VALUE_RULES:
        value = _match_value(rule, report_text)
        if value is not None:
            setattr(metrics, rule.field_name, value)

    for field_name, phrase in _PROPERTY_FLAGS.items():
        setattr(metrics, field_name, phrase in report_text)
    metrics.has_stack_spilling = detect_stack_spilling(report_text)
    metrics.gpu_architecture = detect_gpu_architecture(report_text)
    return metrics
