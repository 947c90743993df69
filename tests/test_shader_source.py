from pathlib import Path
from typing import Optional

import pytest

from orchestrator.errors import ShaderSourceError
from shader_analysis.shader_source import (
    CompiledDumpProvider,
    FileProvider,
    compile_all_variants,
    compile_shader_for_platform,
    dump_file_name,
    is_urp_shader,
    is_valid_for_mali_analysis,
)

DATA_DIR = Path(__file__).parent / "data"


class _StaticProvider:
    def __init__(self, text: Optional[str]):
        self.text = text
        self.calls = []

    def compile_shader_source(self, shader_id, platform, include_all_variants):
        self.calls.append((shader_id, platform, include_all_variants))
        return self.text


def test_dump_file_name():
    assert dump_file_name("Custom/Water") == "Compiled-Custom-Water.shader"


def test_dump_provider_reads_engine_dump():
    provider = CompiledDumpProvider(DATA_DIR)
    text = provider.compile_shader_source("Custom/Water", "gles3x", True)
    assert text is not None and "#ifdef VERTEX" in text


def test_dump_provider_missing_file_is_failure_not_error(tmp_path: Path):
    assert CompiledDumpProvider(tmp_path).compile_shader_source("Missing/Shader", "gles3x", True) is None


def test_file_provider_unreadable_raises(tmp_path: Path):
    with pytest.raises(ShaderSourceError):
        FileProvider(tmp_path / "nope.shader").compile_shader_source("x", "gles3x", True)


def test_compile_for_platform_takes_first_sections_and_normalizes():
    provider = CompiledDumpProvider(DATA_DIR)
    result = compile_shader_for_platform(provider, "Custom/Water")
    assert result.is_success
    assert result.platform == "gles3x"
    assert result.vertex_shader.startswith("#version 310 es\n")
    assert "hlslcc_mtx4x4unity_ObjectToWorld" in result.vertex_shader
    assert "#ifdef UNITY_ADRENO_ES3" in result.fragment_shader


def test_compile_for_platform_failure_result():
    result = compile_shader_for_platform(_StaticProvider(None), "Custom/Water")
    assert not result.is_success
    assert result.error_message
    assert result.vertex_shader is None

    result = compile_shader_for_platform(_StaticProvider("text"), "")
    assert not result.is_success


def test_compile_all_variants_asks_for_all_variants():
    provider = _StaticProvider((DATA_DIR / "Compiled-Custom-Water.shader").read_text(encoding="utf-8"))
    variants = compile_all_variants(provider, "Custom/Water", "gles3x")
    assert len(variants) == 2
    assert provider.calls == [("Custom/Water", "gles3x", True)]


def test_is_valid_for_mali_analysis():
    assert is_valid_for_mali_analysis("#version 310 es")
    assert is_valid_for_mali_analysis("gl_Position = p;")
    assert not is_valid_for_mali_analysis("plain text")
    assert not is_valid_for_mali_analysis("")
    assert not is_valid_for_mali_analysis(None)


def test_is_urp_shader():
    assert is_urp_shader('Tags { "RenderPipeline"="UniversalPipeline" }')
    assert is_urp_shader('#include "Packages/com.unity.render-pipelines.universal/ShaderLibrary/Core.hlsl"')
    assert not is_urp_shader('Shader "Legacy/Diffuse" { }')
    assert not is_urp_shader(None)
