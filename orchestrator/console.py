from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, TextIO

from schemas.config_ir import AnalyzerConfig
from schemas.metrics_ir import StageAnalysis
from schemas.shader_ir import ShaderVariant
from shader_analysis.report import truncate_lines
from shader_analysis.suggestions import rank_suggestions


@dataclass
class ConsoleUI:
    enabled: bool = True
    stream: TextIO = sys.stdout
    verbose: bool = False
    show_raw: bool = False
    max_lines: int = 1000

    def header(self, shader_id: str, cfg: AnalyzerConfig, all_variants: bool, urp: bool = False) -> None:
        if not self.enabled:
            return
        self._section("Analysis start")
        self._kv("Shader", shader_id)
        self._kv("Compiler", cfg.compiler_path or "(not set)")
        self._kv("GPU model", cfg.gpu_model or "default")
        self._kv("Mode", "all variants" if all_variants else "first variant")
        self._kv("Platform", cfg.platform)
        if urp:
            self._kv("Pipeline", "URP shader detected")
        if self.verbose:
            self._kv("Timeout", f"{cfg.timeout_seconds:g}s")
            self._kv("Reports dir", cfg.reports_dir)
        self._print("")

    def stage_start(self, idx: int, total: int, label: str) -> None:
        if not self.enabled:
            return
        self._print(f"[{idx}/{total}] compiling {label}")

    def analysis(self, analysis: StageAnalysis, show_hints: bool = True) -> None:
        if not self.enabled:
            return
        title = f"Result: {analysis.label}" if analysis.label else "Result"
        self._section(title)
        self._kv("Vertex", "ok" if analysis.vertex_ok else "FAILED")
        self._kv("Fragment", "ok" if analysis.fragment_ok else "FAILED")
        if self.verbose:
            self._kv(
                "Compile time",
                f"vertex {analysis.vertex_runtime_seconds:.2f}s, fragment {analysis.fragment_runtime_seconds:.2f}s",
            )
        arch = analysis.fragment_metrics.gpu_architecture or analysis.vertex_metrics.gpu_architecture
        if arch:
            self._kv("Architecture", arch)
        if show_hints:
            self._print(truncate_lines(analysis.report.rstrip("\n"), self.max_lines))
        elif analysis.suggestions:
            top = rank_suggestions(analysis.suggestions)[0]
            self._kv("Top finding", f"{top.priority.label} [{top.category}] {top.issue}")
        if self.show_raw:
            self._block("Vertex output", _split_lines(analysis.raw_vertex_result, ""))
            self._block("Fragment output", _split_lines(analysis.raw_fragment_result, ""))

    def variants(self, variants: List[ShaderVariant]) -> None:
        if not self.enabled:
            return
        self._section(f"Variants ({len(variants)})")
        for idx, variant in enumerate(variants, start=1):
            vs_lines = len(variant.vertex_source.splitlines())
            fs_lines = len(variant.fragment_source.splitlines())
            self._print(
                f"  {idx}. pass={variant.pass_name} keywords={_shorten(variant.keywords or '-', 80)} "
                f"vs={vs_lines} lines fs={fs_lines} lines"
            )

    def config(self, cfg: AnalyzerConfig, ok: bool, message: str, compiler_version: str = "") -> None:
        if not self.enabled:
            return
        self._section("Configuration")
        for key, value in cfg.model_dump().items():
            self._kv(key, str(value))
        if compiler_version:
            self._kv("Compiler version", compiler_version)
        self._kv("Status", "valid" if ok else f"invalid: {message}")

    def saved(self, paths: List[Path]) -> None:
        if not self.enabled or not paths:
            return
        self._block("Reports", [str(path) for path in paths])

    def warning(self, message: str) -> None:
        if not self.enabled:
            return
        self._print(f"  warning: {message}")

    def error(self, message: str) -> None:
        if not self.enabled:
            return
        self._section("Error")
        self._print(f"  {message}")

    def final(self, analyzed: int, failed_stages: int, report_path: Optional[Path]) -> None:
        if not self.enabled:
            return
        self._section("Done")
        self._print(f"  Variants analyzed: {analyzed}")
        if failed_stages:
            self._print(f"  Failed stages: {failed_stages}")
        if report_path:
            self._print(f"  Report: {report_path}")

    def note(self, message: str) -> None:
        self._print(message)

    def _section(self, title: str) -> None:
        self._print("")
        self._print(f"=== {title} ===")

    def _block(self, name: str, lines: List[str]) -> None:
        self._print(f"[{name}]")
        for line in lines:
            self._print(f"  {line}")

    def _kv(self, key: str, value: str) -> None:
        self._print(f"- {key}: {value}")

    def _print(self, line: str) -> None:
        if not self.enabled:
            return
        self.stream.write(line + "\n")
        self.stream.flush()


def _split_lines(text: str, prefix: str) -> List[str]:
    items = [line.rstrip() for line in text.splitlines() if line.strip()]
    if not items:
        return []
    return [f"{prefix}{item}" for item in items]


def _shorten(text: str, max_len: int) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 1] + "…"
