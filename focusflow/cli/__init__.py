"""
FILE: focusflow/cli/__init__.py
PURPOSE: Command-line interface (typer + rich)
"""
