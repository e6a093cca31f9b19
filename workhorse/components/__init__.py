"""Core Business Components.

This package contains independent business modules:
- collaboration: Workspaces, teams, channels, threads, messages and presence
- generation: AI text and UI generation on behalf of agent members
- workflow: Projects, delivery phases and artifacts
"""
