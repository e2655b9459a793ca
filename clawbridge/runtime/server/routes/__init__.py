"""Server route handlers."""

from __future__ import annotations

from .skill_routes import SkillRequest, SkillRoutes, UserRequest

__all__ = ["SkillRequest", "SkillRoutes", "UserRequest"]
