"""Scheduling, validation and state machine for orchestration runs."""
