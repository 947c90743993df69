import sys
from datetime import datetime
from pathlib import Path

import pytest

from orchestrator.pipeline import (
    FRAGMENT_FILE_NAME,
    VERTEX_FILE_NAME,
    analyze_report_texts,
    analyze_shader,
    analyze_stage_sources,
)
from schemas.config_ir import AnalyzerConfig
from schemas.metrics_ir import Priority
from shader_analysis.shader_source import CompiledDumpProvider, FileProvider

DATA_DIR = Path(__file__).parent / "data"

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="fake compiler relies on a shebang")

_VERTEX_REPORT = """Architecture: Valhall
Work registers : 40
Uniform registers : 4
Stack spilling: false
16-bit arithmetic : 80%
Shortest path cycles : 1
Longest path cycles : 2
Bound : A
"""

# Stands in for malioc: picks a canned report from the file extension; the
# shader source can ask it to fail or hang.
_FAKE_MALIOC = '''
import sys, time
from pathlib import Path

src = Path(sys.argv[1])
text = src.read_text(encoding="utf-8")
if "FORCE_SLEEP" in text:
    time.sleep(30)
if "FORCE_FAIL" in text:
    sys.stderr.write("ERROR: syntax error")
    sys.exit(2)
if src.suffix == ".vert":
    sys.stdout.write(VERTEX_REPORT)
else:
    sys.stdout.write(Path(FRAGMENT_REPORT).read_text(encoding="utf-8"))
'''


def _fake_compiler(tmp_path: Path) -> Path:
    path = tmp_path / "malioc"
    path.write_text(
        f"#!{sys.executable}\n"
        f"VERTEX_REPORT = {_VERTEX_REPORT!r}\n"
        f"FRAGMENT_REPORT = {str(DATA_DIR / 'malioc_fragment.txt')!r}\n" + _FAKE_MALIOC,
        encoding="utf-8",
    )
    path.chmod(0o755)
    return path


def _cfg(tmp_path: Path, **kwargs) -> AnalyzerConfig:
    base = {
        "compiler_path": str(_fake_compiler(tmp_path)),
        "reports_dir": str(tmp_path / "reports"),
    }
    base.update(kwargs)
    return AnalyzerConfig(**base)


def test_both_stages_compile_and_report(tmp_path: Path):
    analysis = analyze_stage_sources("void main() {}", "void main() {}", _cfg(tmp_path), label="Water")
    assert analysis.vertex_ok and analysis.fragment_ok
    assert analysis.label == "Water"
    assert analysis.vertex_metrics.work_registers == 40
    assert analysis.vertex_metrics.bottleneck_unit == "A"
    assert analysis.fragment_metrics.work_registers == 20
    assert analysis.fragment_metrics.gpu_architecture == "Valhall"
    assert analysis.raw_vertex_result.startswith("=== Vertex Shader compile succeeded ===")
    assert analysis.vertex_runtime_seconds > 0
    assert analysis.fragment_runtime_seconds > 0
    assert analysis.suggestions[0].priority == Priority.HIGH
    assert "[Vertex Shader Analysis]" in analysis.report
    assert "[Fragment Shader Analysis]" in analysis.report


def test_stage_failures_are_independent(tmp_path: Path):
    analysis = analyze_stage_sources("void main() {}", "FORCE_FAIL", _cfg(tmp_path))
    assert analysis.vertex_ok
    assert not analysis.fragment_ok
    assert analysis.raw_fragment_result.startswith("=== Fragment Shader compile failed (exit code 2) ===")
    assert "ERROR: syntax error" in analysis.raw_fragment_result
    assert analysis.vertex_metrics.work_registers == 40
    assert analysis.fragment_metrics.work_registers == 0
    assert analysis.report


def test_timeout_marks_stage_failed(tmp_path: Path):
    analysis = analyze_stage_sources("FORCE_SLEEP", "void main() {}", _cfg(tmp_path, timeout_seconds=1))
    assert not analysis.vertex_ok
    assert "timed out" in analysis.raw_vertex_result
    assert analysis.fragment_ok


def test_stage_files_removed_unless_kept(tmp_path: Path):
    workdir = tmp_path / "work"
    analyze_stage_sources("a", "b", _cfg(tmp_path), workdir=workdir)
    assert not (workdir / VERTEX_FILE_NAME).exists()
    assert not (workdir / FRAGMENT_FILE_NAME).exists()

    keep = tmp_path / "keep"
    cfg = _cfg(tmp_path, save_temporary_files=True, temporary_files_path=str(keep))
    analyze_stage_sources("vertex body", "fragment body", cfg)
    assert (keep / VERTEX_FILE_NAME).read_text(encoding="utf-8") == "vertex body"
    assert (keep / FRAGMENT_FILE_NAME).read_text(encoding="utf-8") == "fragment body"


def test_analyze_shader_first_variant_auto_saves(tmp_path: Path):
    cfg = _cfg(tmp_path)
    now = datetime(2024, 5, 6, 7, 8, 9)
    outcome = analyze_shader(CompiledDumpProvider(DATA_DIR), "Custom/Water", cfg, now=now)
    assert outcome.ok
    assert len(outcome.analyses) == 1
    assert outcome.analyses[0].label == "Custom/Water"
    assert [p.name for p in outcome.saved_reports] == ["Auto_Custom_Water_20240506_070809.txt"]
    saved = outcome.saved_reports[0].read_text(encoding="utf-8")
    assert "Custom/Water" in saved
    assert "[Optimization Suggestions]" in saved


def test_analyze_shader_all_variants(tmp_path: Path):
    cfg = _cfg(tmp_path, auto_save_results=False)
    outcome = analyze_shader(CompiledDumpProvider(DATA_DIR), "Custom/Water", cfg, all_variants=True)
    assert outcome.ok
    assert len(outcome.analyses) == 2
    assert "FOG_LINEAR" in outcome.analyses[1].label
    assert outcome.saved_reports == []
    assert not (tmp_path / "reports").exists()


def test_kept_stage_files_are_per_variant(tmp_path: Path):
    keep = tmp_path / "keep"
    cfg = _cfg(
        tmp_path,
        auto_save_results=False,
        save_temporary_files=True,
        temporary_files_path=str(keep),
    )
    outcome = analyze_shader(CompiledDumpProvider(DATA_DIR), "Custom/Water", cfg, all_variants=True)
    assert len(outcome.analyses) == 2
    first = (keep / "variant_001" / FRAGMENT_FILE_NAME).read_text(encoding="utf-8")
    second = (keep / "variant_002" / FRAGMENT_FILE_NAME).read_text(encoding="utf-8")
    assert "#ifdef UNITY_ADRENO_ES3" in first
    assert "vec4(0.5)" in second
    assert (keep / "variant_002" / VERTEX_FILE_NAME).exists()


def test_non_glsl_stages_are_flagged(tmp_path: Path):
    dump = tmp_path / "dump.shader"
    dump.write_text("#ifdef VERTEX\nfoo\n#endif\n#ifdef FRAGMENT\nbar\n#endif\n", encoding="utf-8")
    cfg = _cfg(tmp_path, auto_save_results=False)
    outcome = analyze_shader(FileProvider(dump), "Plain/Text", cfg)
    assert outcome.ok
    assert len(outcome.warnings) == 2
    assert outcome.warnings[0].startswith("Plain/Text: vertex stage")
    assert "fragment stage" in outcome.warnings[1]


def test_glsl_stages_have_no_warnings(tmp_path: Path):
    cfg = _cfg(tmp_path, auto_save_results=False)
    outcome = analyze_shader(CompiledDumpProvider(DATA_DIR), "Custom/Water", cfg)
    assert outcome.warnings == []


def test_analyze_shader_missing_dump(tmp_path: Path):
    outcome = analyze_shader(CompiledDumpProvider(tmp_path), "Missing/Shader", _cfg(tmp_path))
    assert not outcome.ok
    assert outcome.error_message
    assert outcome.analyses == []


def test_analyze_report_texts_without_compiler():
    fragment = (DATA_DIR / "malioc_fragment.txt").read_text(encoding="utf-8")
    analysis = analyze_report_texts("", fragment)
    assert not analysis.vertex_ok
    assert analysis.fragment_ok
    assert analysis.fragment_metrics.sixteen_bit_arithmetic_percentage == 45.5
    assert analysis.fragment_metrics.modifies_coverage
    categories = [s.category for s in analysis.suggestions]
    assert "Precision optimization" in categories
