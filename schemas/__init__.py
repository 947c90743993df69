"""Pydantic schemas for the Mali shader analyzer."""

from schemas.strict_base import ShaderStage, StrictBaseModel

__all__ = ["ShaderStage", "StrictBaseModel"]
