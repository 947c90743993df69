from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from orchestrator.config import coerce_setting, load_config, save_config
from orchestrator.console import ConsoleUI
from orchestrator.errors import ConfigError, MaliocUnavailableError, ShaderSourceError
from orchestrator.pipeline import analyze_report_texts, analyze_shader, stage_source_warnings
from schemas.config_ir import GPU_MODELS, AnalyzerConfig, validate_config
from shader_analysis.malioc_runner import malioc_version
from shader_analysis.report import format_full_report, report_file_name, write_report
from shader_analysis.shader_source import (
    CompiledDumpProvider,
    FileProvider,
    ShaderSourceProvider,
    compile_all_variants,
    is_urp_shader,
)

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _setup_logging(level: str, log_file: Optional[str]) -> None:
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.WARNING))
    fmt = logging.Formatter(_LOG_FORMAT)
    if not root_logger.handlers:
        sh = logging.StreamHandler()
        sh.setFormatter(fmt)
        root_logger.addHandler(sh)
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setFormatter(fmt)
        fh.setLevel(logging.DEBUG)
        root_logger.addHandler(fh)
    logging.captureWarnings(True)


def _config_overrides(args: argparse.Namespace) -> Dict[str, object]:
    overrides: Dict[str, object] = {}
    if getattr(args, "compiler", None):
        overrides["compiler_path"] = args.compiler
    if getattr(args, "gpu", None):
        overrides["use_custom_gpu"] = True
        overrides["selected_gpu_model"] = args.gpu
    if getattr(args, "compiler_verbose", False):
        overrides["enable_verbose_output"] = True
    if getattr(args, "timeout", None) is not None:
        overrides["timeout_seconds"] = args.timeout
    if getattr(args, "no_auto_save", False):
        overrides["auto_save_results"] = False
    if getattr(args, "reports_dir", None):
        overrides["reports_dir"] = args.reports_dir
    if getattr(args, "dump_dir", None):
        overrides["dump_dir"] = args.dump_dir
    if getattr(args, "keep_temp", None):
        overrides["save_temporary_files"] = True
        overrides["temporary_files_path"] = args.keep_temp
    return overrides


def _provider(args: argparse.Namespace, cfg: AnalyzerConfig) -> ShaderSourceProvider:
    if args.compiled:
        return FileProvider(Path(args.compiled))
    return CompiledDumpProvider(Path(cfg.dump_dir))


def _shader_id(args: argparse.Namespace) -> str:
    if args.shader:
        return args.shader
    if args.compiled:
        return Path(args.compiled).stem
    raise SystemExit("Either --shader or --compiled is required")


def _is_urp_asset(args: argparse.Namespace) -> bool:
    if not getattr(args, "shader_asset", None):
        return False
    path = Path(args.shader_asset)
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        raise ShaderSourceError(f"cannot read shader asset {path}: {exc}") from exc
    return is_urp_shader(text)


def _reporter(args: argparse.Namespace, cfg: AnalyzerConfig) -> ConsoleUI:
    return ConsoleUI(
        enabled=args.ui == "console",
        stream=sys.stdout,
        verbose=bool(args.ui_verbose),
        show_raw=bool(args.ui_raw),
        max_lines=cfg.max_result_display_lines,
    )


def _cmd_analyze(args: argparse.Namespace) -> int:
    cfg = load_config(Path(args.config_dir), _config_overrides(args))
    ok, message = validate_config(cfg)
    if not ok:
        raise SystemExit(f"Invalid configuration: {message}")

    shader_id = _shader_id(args)
    reporter = _reporter(args, cfg)
    reporter.header(shader_id, cfg, args.all_variants, urp=_is_urp_asset(args))
    outcome = analyze_shader(
        _provider(args, cfg),
        shader_id,
        cfg,
        all_variants=args.all_variants,
        reporter=reporter,
    )
    if outcome.error_message:
        reporter.error(outcome.error_message)
        return 1

    failed_stages = 0
    for analysis in outcome.analyses:
        reporter.analysis(analysis, show_hints=cfg.show_optimization_hints)
        failed_stages += int(not analysis.vertex_ok) + int(not analysis.fragment_ok)
    reporter.saved(outcome.saved_reports)

    report_path: Optional[Path] = None
    if args.out:
        now = datetime.now()
        parts: List[str] = []
        for analysis in outcome.analyses:
            name = f"{shader_id} {analysis.label}" if args.all_variants else shader_id
            parts.append(
                format_full_report(
                    name,
                    analysis.report,
                    analysis.raw_vertex_result,
                    analysis.raw_fragment_result,
                    cfg.gpu_model,
                    now,
                )
            )
        out = Path(args.out)
        if out.is_dir():
            out = out / report_file_name(shader_id, now)
        report_path = write_report(out, "\n".join(parts))
    reporter.final(len(outcome.analyses), failed_stages, report_path)
    return 0


def _cmd_variants(args: argparse.Namespace) -> int:
    cfg = load_config(Path(args.config_dir), _config_overrides(args))
    shader_id = _shader_id(args)
    reporter = _reporter(args, cfg)
    variants = compile_all_variants(_provider(args, cfg), shader_id, cfg.platform)
    reporter.variants(variants)
    for idx, variant in enumerate(variants, start=1):
        for warning in stage_source_warnings(variant, f"variant {idx}"):
            logger.warning("%s", warning)
            reporter.warning(warning)
    if args.write_dir:
        out_dir = Path(args.write_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        for idx, variant in enumerate(variants, start=1):
            (out_dir / f"variant_{idx:03d}.vert").write_text(variant.vertex_source, encoding="utf-8")
            (out_dir / f"variant_{idx:03d}.frag").write_text(variant.fragment_source, encoding="utf-8")
        logger.info("wrote %d variants to %s", len(variants), out_dir)
    return 0 if variants else 1


def _cmd_parse_report(args: argparse.Namespace) -> int:
    cfg = load_config(Path(args.config_dir))
    vertex_text = Path(args.vertex).read_text(encoding="utf-8", errors="replace") if args.vertex else ""
    fragment_text = Path(args.fragment).read_text(encoding="utf-8", errors="replace") if args.fragment else ""
    reporter = _reporter(args, cfg)
    analysis = analyze_report_texts(vertex_text, fragment_text)
    reporter.analysis(analysis, show_hints=cfg.show_optimization_hints)
    if args.out:
        write_report(Path(args.out), analysis.report)
    return 0


def _cmd_config(args: argparse.Namespace) -> int:
    config_dir = Path(args.config_dir)
    cfg = load_config(config_dir)
    reporter = _reporter(args, cfg)
    if args.action == "set":
        if not args.key or args.value is None:
            raise SystemExit("config set requires KEY and VALUE")
        data = cfg.model_dump()
        data[args.key] = coerce_setting(cfg, args.key, args.value)
        try:
            cfg = AnalyzerConfig(**data)
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc
        path = save_config(cfg, config_dir)
        reporter.note(f"Saved {args.key} to {path}")
        return 0
    if args.action == "reset":
        cfg.reset_to_default()
        path = save_config(cfg, config_dir)
        reporter.note(f"Reset settings in {path}")
        return 0
    ok, message = validate_config(cfg)
    version = malioc_version(cfg.compiler_path) if ok else ""
    reporter.config(cfg, ok, message, compiler_version=version)
    if args.action == "validate":
        return 0 if ok else 1
    return 0


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config-dir", default="configs", help="Config directory")
    parser.add_argument(
        "--ui",
        default="console",
        choices=["console", "quiet"],
        help="Console output mode",
    )
    parser.add_argument("--ui-verbose", action="store_true", help="Show more run details")
    parser.add_argument("--ui-raw", action="store_true", help="Print raw malioc output")
    parser.add_argument("--log-level", default="WARNING", help="Python log level")
    parser.add_argument("--log-file", default=None, help="Also write debug logs to this file")


def _add_source(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--shader", default=None, help="Shader name, e.g. Custom/Water")
    parser.add_argument(
        "--compiled",
        default=None,
        help="Path to a combined compiled-shader dump (bypasses --dump-dir lookup)",
    )
    parser.add_argument("--dump-dir", default=None, help="Directory holding Compiled-*.shader dumps")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Mali offline compiler shader analyzer")
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="Compile with malioc and report")
    _add_common(analyze)
    _add_source(analyze)
    analyze.add_argument("--compiler", default=None, help="Override malioc path")
    analyze.add_argument("--gpu", choices=GPU_MODELS, default=None, help="Target GPU model")
    analyze.add_argument(
        "--compiler-verbose",
        action="store_true",
        help="Pass -d to malioc for verbose output",
    )
    analyze.add_argument("--timeout", type=float, default=None, help="malioc timeout in seconds")
    analyze.add_argument("--all-variants", action="store_true", help="Analyze every pass/keyword variant")
    analyze.add_argument("--out", default=None, help="Write the full report to this file or directory")
    analyze.add_argument("--reports-dir", default=None, help="Auto-save directory")
    analyze.add_argument("--no-auto-save", action="store_true", help="Disable report auto-save")
    analyze.add_argument("--keep-temp", default=None, help="Keep stage files in this directory")
    analyze.add_argument(
        "--shader-asset",
        default=None,
        help="Shader source (.shader) to check for URP markers",
    )
    analyze.set_defaults(func=_cmd_analyze)

    variants = sub.add_parser("variants", help="List variants found in a compiled dump")
    _add_common(variants)
    _add_source(variants)
    variants.add_argument("--write-dir", default=None, help="Write each variant's stage sources here")
    variants.set_defaults(func=_cmd_variants)

    parse_report = sub.add_parser("parse-report", help="Analyze saved malioc output")
    _add_common(parse_report)
    parse_report.add_argument("--vertex", default=None, help="malioc output for the vertex stage")
    parse_report.add_argument("--fragment", default=None, help="malioc output for the fragment stage")
    parse_report.add_argument("--out", default=None, help="Write the report to this file")
    parse_report.set_defaults(func=_cmd_parse_report)

    config = sub.add_parser("config", help="Show, validate or change settings")
    _add_common(config)
    config.add_argument("action", choices=["show", "validate", "set", "reset"])
    config.add_argument("key", nargs="?", default=None)
    config.add_argument("value", nargs="?", default=None)
    config.set_defaults(func=_cmd_config)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    _setup_logging(args.log_level, args.log_file)
    try:
        return args.func(args)
    except ConfigError as exc:
        raise SystemExit(f"Configuration error: {exc}") from exc
    except MaliocUnavailableError as exc:
        raise SystemExit(f"Mali compiler unavailable: {exc}") from exc
    except ShaderSourceError as exc:
        raise SystemExit(f"Shader source error: {exc}") from exc


if __name__ == "__main__":
    raise SystemExit(main())
