"""CLI command groups for Conductor.

- config: Manage ~/.conductor/config.yaml
- templates: Browse the built-in workflow templates
- agents: Inspect the built-in agent roster
- run: Drive a template to completion with the default agents
"""
