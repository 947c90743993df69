"""Boundary to the host engine's shader compiler.

The engine turns a shader into one combined compiled-text dump covering every
stage (and optionally every keyword variant).  Everything downstream only
needs that text, so the engine is reached through ``ShaderSourceProvider``
and can be swapped without touching the parsers.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Protocol

from orchestrator.errors import ShaderSourceError
from schemas.shader_ir import ShaderCompileResult, ShaderVariant
from shader_analysis.glsl_version import normalize_version
from shader_analysis.section_extract import extract_fragment_shader, extract_vertex_shader
from shader_analysis.variant_segment import segment_variants

logger = logging.getLogger(__name__)

_GLSL_HINTS = ("#version", "gl_Position", "texture", "uniform", "varying", "attribute")
_URP_HINTS = (
    "Universal Render Pipeline",
    "UniversalPipeline",
    "URP",
    "Packages/com.unity.render-pipelines.universal",
)


class ShaderSourceProvider(Protocol):
    def compile_shader_source(
        self,
        shader_id: str,
        platform: str,
        include_all_variants: bool,
    ) -> Optional[str]:
        """Return the combined compiled text, or None when compilation failed."""
        ...


def dump_file_name(shader_id: str) -> str:
    return "Compiled-" + shader_id.replace("/", "-") + ".shader"


class CompiledDumpProvider:
    """Reads the ``Compiled-<shader>.shader`` files the engine writes to its temp dir.

    The dump already holds whatever variants the engine was asked for, so
    ``platform`` and ``include_all_variants`` only matter to whoever produced it.
    """

    def __init__(self, dump_dir: Path):
        self.dump_dir = Path(dump_dir)

    def path_for(self, shader_id: str) -> Path:
        return self.dump_dir / dump_file_name(shader_id)

    def compile_shader_source(
        self,
        shader_id: str,
        platform: str,
        include_all_variants: bool,
    ) -> Optional[str]:
        path = self.path_for(shader_id)
        if not path.exists():
            logger.warning("no compiled dump for %s at %s", shader_id, path)
            return None
        try:
            return path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            raise ShaderSourceError(f"cannot read compiled dump {path}: {exc}") from exc


class FileProvider:
    """Serves a single compiled dump file regardless of the requested shader id."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def compile_shader_source(
        self,
        shader_id: str,
        platform: str,
        include_all_variants: bool,
    ) -> Optional[str]:
        try:
            return self.path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            raise ShaderSourceError(f"cannot read compiled dump {self.path}: {exc}") from exc


def compile_shader_for_platform(
    provider: ShaderSourceProvider,
    shader_id: str,
    platform: str = "gles3x",
) -> ShaderCompileResult:
    """First vertex and fragment section of the dump, version-normalized."""
    result = ShaderCompileResult(platform=platform)
    if not shader_id:
        result.error_message = "No shader specified"
        return result

    compiled = provider.compile_shader_source(shader_id, platform, True)
    if not compiled:
        result.error_message = "Compilation failed, no compiled code available"
        return result

    result.vertex_shader = normalize_version(extract_vertex_shader(compiled))
    result.fragment_shader = normalize_version(extract_fragment_shader(compiled))
    result.is_success = True
    return result


def compile_all_variants(
    provider: ShaderSourceProvider,
    shader_id: str,
    platform: str = "gles3x",
) -> List[ShaderVariant]:
    if not shader_id:
        return []
    compiled = provider.compile_shader_source(shader_id, platform, True)
    return segment_variants(compiled)


def is_valid_for_mali_analysis(source: Optional[str]) -> bool:
    if not source:
        return False
    return any(hint in source for hint in _GLSL_HINTS)


def is_urp_shader(shader_text: Optional[str]) -> bool:
    if not shader_text:
        return False
    return any(hint in shader_text for hint in _URP_HINTS)
