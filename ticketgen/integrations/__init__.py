"""Adapters for external collaborators: Figma, Claude CLI, Redis."""
