from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from schemas.metrics_ir import OptimizationSuggestion, PerformanceMetrics, Priority


REPORT_TITLE = "=== Mali Compiler Performance Analysis Report ==="

PRIORITY_ICONS: Dict[Priority, str] = {
    Priority.CRITICAL: "🔴",
    Priority.HIGH: "🟠",
    Priority.MEDIUM: "🟡",
    Priority.LOW: "🟢",
}
_FALLBACK_ICON = "ℹ️"


def _num(value: float) -> str:
    return f"{value:g}"


def _stage_block(title: str, metrics: PerformanceMetrics) -> List[str]:
    lines = [
        f"[{title} Shader Analysis]",
        f"• Work registers: {metrics.work_registers}",
        f"• Uniform registers: {metrics.uniform_registers}",
        f"• 16-bit arithmetic: {metrics.sixteen_bit_arithmetic_percentage:.1f}%",
        f"• Shortest path cycles: {_num(metrics.shortest_path_cycles)}",
        f"• Longest path cycles: {_num(metrics.longest_path_cycles)}",
    ]
    if metrics.bottleneck_unit:
        lines.append(f"• Bottleneck unit: {metrics.bottleneck_unit}")
    lines.append("")
    return lines


def format_suggestion(suggestion: OptimizationSuggestion) -> List[str]:
    icon = PRIORITY_ICONS.get(suggestion.priority, _FALLBACK_ICON)
    return [
        f"{icon} [{suggestion.category}] {suggestion.issue}",
        f"   Suggestion: {suggestion.suggestion}",
        f"   Expected impact: {suggestion.expected_impact}",
        "",
    ]


def format_analysis_report(
    vertex_metrics: PerformanceMetrics,
    fragment_metrics: PerformanceMetrics,
    suggestions: List[OptimizationSuggestion],
) -> str:
    """Render the fixed-layout text report; missing metrics print as zero."""
    lines: List[str] = [REPORT_TITLE, ""]
    lines.extend(_stage_block("Vertex", vertex_metrics))
    lines.extend(_stage_block("Fragment", fragment_metrics))
    if suggestions:
        lines.append("[Optimization Suggestions]")
        for suggestion in suggestions:
            lines.extend(format_suggestion(suggestion))
    return "\n".join(lines) + "\n"


def format_full_report(
    shader_name: str,
    analysis_report: str,
    raw_vertex_result: str,
    raw_fragment_result: str,
    gpu_model: Optional[str],
    generated_at: datetime,
) -> str:
    lines = [
        "Mali Compiler Analysis Report",
        f"Shader: {shader_name}",
        f"Generated: {generated_at:%Y-%m-%d %H:%M:%S}",
        f"GPU model: {gpu_model or 'default'}",
        "",
        analysis_report,
        "",
        "=== Raw Compiler Output ===",
        "",
        "[Vertex Shader]",
        raw_vertex_result,
        "",
        "[Fragment Shader]",
        raw_fragment_result,
    ]
    return "\n".join(lines) + "\n"


def format_auto_save_report(shader_name: str, analysis_report: str, generated_at: datetime) -> str:
    lines = [
        "Mali Compiler Auto-saved Report",
        f"Shader: {shader_name}",
        f"Generated: {generated_at:%Y-%m-%d %H:%M:%S}",
        "",
        analysis_report,
    ]
    return "\n".join(lines) + "\n"


def report_file_name(shader_name: str, generated_at: datetime, prefix: str = "MaliAnalysis") -> str:
    safe_name = shader_name.replace("/", "_").replace("\\", "_")
    return f"{prefix}_{safe_name}_{generated_at:%Y%m%d_%H%M%S}.txt"


def write_report(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def auto_save_report(
    reports_dir: Path,
    shader_name: str,
    analysis_report: str,
    generated_at: Optional[datetime] = None,
) -> Optional[Path]:
    if not analysis_report:
        return None
    generated_at = generated_at or datetime.now()
    path = reports_dir / report_file_name(shader_name, generated_at, prefix="Auto")
    return write_report(path, format_auto_save_report(shader_name, analysis_report, generated_at))


def truncate_lines(text: str, max_lines: int) -> str:
    lines = text.splitlines()
    if len(lines) <= max_lines:
        return text
    hidden = len(lines) - max_lines
    return "\n".join(lines[:max_lines] + [f"... ({hidden} more lines)"])
