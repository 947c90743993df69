from __future__ import annotations

from pathlib import Path
from typing import List, Tuple

from pydantic import Field, field_validator

from schemas.strict_base import StrictBaseModel


GPU_MODELS: List[str] = [
    "Mali-G71",
    "Mali-G72",
    "Mali-G76",
    "Mali-G77",
    "Mali-G78",
    "Mali-G310",
    "Mali-G510",
    "Mali-G610",
    "Mali-G710",
    "Mali-G715",
]
DEFAULT_GPU_MODEL = "Mali-G78"


class AnalyzerConfig(StrictBaseModel):
    compiler_path: str = ""
    use_custom_gpu: bool = False
    selected_gpu_model: str = DEFAULT_GPU_MODEL

    enable_verbose_output: bool = False
    save_temporary_files: bool = False
    temporary_files_path: str = ""
    timeout_seconds: float = Field(default=30.0, gt=0)

    auto_save_results: bool = True
    show_optimization_hints: bool = True
    max_result_display_lines: int = Field(default=1000, ge=1)
    reports_dir: str = "reports"
    dump_dir: str = "Temp"
    platform: str = "gles3x"

    @field_validator("selected_gpu_model")
    @classmethod
    def _known_gpu(cls, value: str) -> str:
        if value not in GPU_MODELS:
            raise ValueError(f"unknown GPU model {value!r}; expected one of {', '.join(GPU_MODELS)}")
        return value

    @property
    def gpu_model(self) -> str | None:
        """GPU passed to malioc, or None to let the compiler pick its default."""
        return self.selected_gpu_model if self.use_custom_gpu else None

    def reset_to_default(self) -> None:
        defaults = AnalyzerConfig()
        for name in type(self).model_fields:
            setattr(self, name, getattr(defaults, name))


def validate_config(cfg: AnalyzerConfig) -> Tuple[bool, str]:
    if not cfg.compiler_path:
        return False, "Mali compiler path is not set"
    if not Path(cfg.compiler_path).is_file():
        return False, f"Mali compiler not found: {cfg.compiler_path}"
    if cfg.save_temporary_files and not cfg.temporary_files_path:
        return False, "Temporary file saving is enabled but no path is set"
    return True, ""
