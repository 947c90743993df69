"""End-to-end analysis: compiled dump -> stage files -> malioc -> report."""
from __future__ import annotations

import logging
import shutil
import tempfile
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

from orchestrator.console import ConsoleUI
from schemas.config_ir import AnalyzerConfig
from schemas.metrics_ir import StageAnalysis
from schemas.shader_ir import ShaderVariant
from shader_analysis.malioc_parse import extract_metrics
from shader_analysis.malioc_runner import MaliocRunOutput, run_malioc
from shader_analysis.report import auto_save_report, format_analysis_report
from shader_analysis.shader_source import (
    ShaderSourceProvider,
    compile_all_variants,
    compile_shader_for_platform,
    is_valid_for_mali_analysis,
)
from shader_analysis.suggestions import generate_suggestions

logger = logging.getLogger(__name__)

VERTEX_FILE_NAME = "vertex.vert"
FRAGMENT_FILE_NAME = "fragment.frag"


@dataclass
class ShaderAnalysis:
    shader_id: str
    analyses: List[StageAnalysis] = field(default_factory=list)
    error_message: str = ""
    saved_reports: List[Path] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.error_message and bool(self.analyses)


def _stage_workdir(cfg: AnalyzerConfig) -> Tuple[Path, bool]:
    """Returns ``(dir, owned)``; owned dirs are removed after the run."""
    if cfg.save_temporary_files and cfg.temporary_files_path:
        path = Path(cfg.temporary_files_path)
        path.mkdir(parents=True, exist_ok=True)
        return path, False
    return Path(tempfile.mkdtemp(prefix="malioc_")), True


def _compile_stage(cfg: AnalyzerConfig, path: Path) -> MaliocRunOutput:
    return run_malioc(
        cfg.compiler_path,
        path,
        gpu_model=cfg.gpu_model,
        verbose=cfg.enable_verbose_output,
        timeout=cfg.timeout_seconds,
    )


def analyze_stage_sources(
    vertex_source: str,
    fragment_source: str,
    cfg: AnalyzerConfig,
    label: str = "",
    workdir: Optional[Path] = None,
) -> StageAnalysis:
    """Compile both stages with malioc and turn the output into a report.

    Vertex and fragment failures are independent; a failed stage still yields
    (default) metrics so the report is always produced.
    """
    owned = False
    if workdir is None:
        workdir, owned = _stage_workdir(cfg)
    else:
        workdir.mkdir(parents=True, exist_ok=True)
    vertex_path = workdir / VERTEX_FILE_NAME
    fragment_path = workdir / FRAGMENT_FILE_NAME
    try:
        vertex_path.write_text(vertex_source or "", encoding="utf-8")
        fragment_path.write_text(fragment_source or "", encoding="utf-8")
        vertex_run = _compile_stage(cfg, vertex_path)
        fragment_run = _compile_stage(cfg, fragment_path)
    finally:
        if owned:
            shutil.rmtree(workdir, ignore_errors=True)
        elif not cfg.save_temporary_files:
            vertex_path.unlink(missing_ok=True)
            fragment_path.unlink(missing_ok=True)

    raw_vertex = vertex_run.labeled_text("Vertex")
    raw_fragment = fragment_run.labeled_text("Fragment")
    vertex_metrics = extract_metrics(raw_vertex)
    fragment_metrics = extract_metrics(raw_fragment)
    suggestions = generate_suggestions(vertex_metrics, fragment_metrics)
    return StageAnalysis(
        label=label,
        vertex_metrics=vertex_metrics,
        fragment_metrics=fragment_metrics,
        suggestions=suggestions,
        raw_vertex_result=raw_vertex,
        raw_fragment_result=raw_fragment,
        vertex_ok=vertex_run.ok,
        fragment_ok=fragment_run.ok,
        vertex_runtime_seconds=vertex_run.runtime_seconds,
        fragment_runtime_seconds=fragment_run.runtime_seconds,
        report=format_analysis_report(vertex_metrics, fragment_metrics, suggestions),
    )


def analyze_report_texts(vertex_text: str, fragment_text: str, label: str = "") -> StageAnalysis:
    """Analyze malioc output that was captured earlier, without running the compiler."""
    vertex_metrics = extract_metrics(vertex_text)
    fragment_metrics = extract_metrics(fragment_text)
    suggestions = generate_suggestions(vertex_metrics, fragment_metrics)
    return StageAnalysis(
        label=label,
        vertex_metrics=vertex_metrics,
        fragment_metrics=fragment_metrics,
        suggestions=suggestions,
        raw_vertex_result=vertex_text,
        raw_fragment_result=fragment_text,
        vertex_ok=bool(vertex_text),
        fragment_ok=bool(fragment_text),
        report=format_analysis_report(vertex_metrics, fragment_metrics, suggestions),
    )


def stage_source_warnings(variant: ShaderVariant, label: str = "") -> List[str]:
    """Messages for stages that do not look like GLSL malioc can consume."""
    prefix = f"{label}: " if label else ""
    warnings: List[str] = []
    for stage, source in (("vertex", variant.vertex_source), ("fragment", variant.fragment_source)):
        if not is_valid_for_mali_analysis(source):
            warnings.append(f"{prefix}{stage} stage does not look like GLSL; malioc will likely reject it")
    return warnings


def _variant_targets(
    provider: ShaderSourceProvider,
    shader_id: str,
    cfg: AnalyzerConfig,
    all_variants: bool,
) -> Tuple[List[ShaderVariant], str]:
    if all_variants:
        variants = compile_all_variants(provider, shader_id, cfg.platform)
        if not variants:
            return [], "No paired vertex/fragment variants found in the compiled dump"
        return variants, ""

    result = compile_shader_for_platform(provider, shader_id, cfg.platform)
    if not result.is_success:
        return [], result.error_message
    if not result.vertex_shader or not result.fragment_shader:
        return [], "Could not find vertex and fragment sections in the compiled dump"
    variant = ShaderVariant(
        vertex_source=result.vertex_shader,
        fragment_source=result.fragment_shader,
    )
    return [variant], ""


def analyze_shader(
    provider: ShaderSourceProvider,
    shader_id: str,
    cfg: AnalyzerConfig,
    all_variants: bool = False,
    reporter: Optional[ConsoleUI] = None,
    now: Optional[datetime] = None,
) -> ShaderAnalysis:
    outcome = ShaderAnalysis(shader_id=shader_id)
    variants, error = _variant_targets(provider, shader_id, cfg, all_variants)
    if error:
        outcome.error_message = error
        logger.warning("%s: %s", shader_id, error)
        return outcome

    for idx, variant in enumerate(variants, start=1):
        label = variant.label if all_variants else shader_id
        if reporter:
            reporter.stage_start(idx, len(variants), label)
        for warning in stage_source_warnings(variant, label):
            logger.warning("%s", warning)
            outcome.warnings.append(warning)
            if reporter:
                reporter.warning(warning)
        workdir = None
        if cfg.save_temporary_files and cfg.temporary_files_path and len(variants) > 1:
            workdir = Path(cfg.temporary_files_path) / f"variant_{idx:03d}"
        analysis = analyze_stage_sources(
            variant.vertex_source,
            variant.fragment_source,
            cfg,
            label=label,
            workdir=workdir,
        )
        outcome.analyses.append(analysis)
        if cfg.auto_save_results:
            saved = auto_save_report(
                Path(cfg.reports_dir),
                shader_id if len(variants) == 1 else f"{shader_id}_{idx}",
                analysis.report,
                now,
            )
            if saved:
                outcome.saved_reports.append(saved)
    return outcome
