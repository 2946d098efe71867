"""Bash AI: natural language to shell commands, with tool plugins."""
