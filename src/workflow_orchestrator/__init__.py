"""Workflow orchestration engine: plan, generate workers, run validated waves."""

__version__ = "0.1.0"
