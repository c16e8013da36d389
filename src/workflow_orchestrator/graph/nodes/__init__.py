"""Planning nodes; each takes the graph state plus the execution context."""
