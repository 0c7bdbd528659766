"""crittertaxa configuration package.

This package provides centralized configuration management with:
- Pydantic models for every configurable subsystem
- The override policy consumed by the group name classifier
- YAML parsing and serialization
"""

from .manager import ConfigManager
from .models import CritterCategoryConfig, ToolboxConfig

__all__ = [
    "ConfigManager",
    "CritterCategoryConfig",
    "ToolboxConfig",
]
