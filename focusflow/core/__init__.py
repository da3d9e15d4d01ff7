"""
FILE: focusflow/core/__init__.py
PURPOSE: Core layer - models, tree engine, workspace lifecycle, persistence
"""
