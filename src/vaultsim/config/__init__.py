"""Scenario configuration: pydantic schema and YAML loader."""
