"""Configuration for the workflow orchestrator."""

from workflow_orchestrator.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
