"""
FILE: focusflow/cli/commands/__init__.py
PURPOSE: CLI command modules, one per command group
"""
