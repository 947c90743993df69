from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


UNNAMED_PASS = "(unnamed)"


class ShaderVariant(BaseModel):
    """One compiled pass/keyword combination, vertex and fragment stage paired."""
    vertex_source: str = ""
    fragment_source: str = ""
    pass_name: str = UNNAMED_PASS
    keywords: str = ""

    @property
    def label(self) -> str:
        keywords = self.keywords or "<no keywords>"
        return f"{self.pass_name} [{keywords}]"


class ShaderCompileResult(BaseModel):
    vertex_shader: Optional[str] = None
    fragment_shader: Optional[str] = None
    is_success: bool = False
    error_message: str = ""
    platform: str = "gles3x"
