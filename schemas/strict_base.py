from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict

ShaderStage = Literal["Vertex", "Fragment"]


class StrictBaseModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
