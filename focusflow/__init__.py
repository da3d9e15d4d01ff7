"""
FocusFlow - hierarchical task zones, workspace history and pomodoro sessions.
"""

__version__ = "0.4.0"
