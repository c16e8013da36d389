"""LangGraph planning pipeline: plan, validate, staff and lay out."""
