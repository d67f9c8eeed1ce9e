"""Tool execution orchestration."""

from .orchestrator import ToolOrchestrator  # noqa: F401

__all__ = ["ToolOrchestrator"]
