"""HTTP surface over the workflow orchestrator."""
