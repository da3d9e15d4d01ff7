"""
FILE: focusflow/core/constants.py
PURPOSE: Constants used throughout the application
EXPORTS:
  - INDENT_WIDTH: Pixels per tree level for drag projection
  - SNAPSHOT_KEY / LEGACY_STORAGE_KEYS: Storage keys
  - SCHEMA_VERSION: Relational schema version
  - DEFAULT_SETTINGS: Authoritative settings defaults (snapshot document shape)
  - PREDEFINED_TEMPLATES: Built-in zone-set blueprints (raw dicts)
  - ZONE_COLORS: Palette for new zones
DEPENDENCIES:
  - None (stdlib only)
NOTES:
  - Single source of truth for defaults and magic strings
  - Settings keys stay camelCase because they are written verbatim into the
    snapshot document
"""

# Tree / drag projection
INDENT_WIDTH = 24

# Storage keys
SNAPSHOT_KEY = "focus-flow-storage-v5"
LEGACY_STORAGE_KEY = "focus-flow-storage-v4"
LEGACY_STORAGE_KEYS = (LEGACY_STORAGE_KEY, "floating-todo-data-v3")

# Relational schema version (app_settings.version)
SCHEMA_VERSION = 1

# Views
VIEW_ZONES = "zones"
VIEW_GLOBAL = "global"
VIEW_HISTORY = "history"
VIEW_SETTINGS = "settings"
VALID_VIEWS = (VIEW_ZONES, VIEW_GLOBAL, VIEW_HISTORY, VIEW_SETTINGS)

# Task enums
VALID_PRIORITIES = ("low", "medium", "high")
VALID_URGENCIES = ("low", "medium", "high", "urgent")
VALID_DEADLINE_TYPES = ("exact", "today", "tomorrow", "week", "none")
DEFAULT_PRIORITY = "medium"
DEFAULT_URGENCY = "low"
DEFAULT_DEADLINE_TYPE = "none"

# Workspace defaults
DEFAULT_WORKSPACE_NAME = "My workspace"
NEW_WORKSPACE_NAME = "New workspace"
DEFAULT_ZONE_NAME = "Default"
DEFAULT_ZONE_COLOR = "#3b82f6"

# History
AUTO_SAVE_ID = "auto-save-fixed-slot"
AUTO_SAVE_NAME = "Auto-save"
MAX_HISTORY = 100

# Undo
MAX_UNDO = 20

ZONE_COLORS = (
    "#3b82f6",  # blue
    "#22c55e",  # green
    "#f59e0b",  # yellow
    "#ef4444",  # red
    "#8b5cf6",  # purple
    "#ec4899",  # pink
    "#06b6d4",  # cyan
    "#f97316",  # orange
    "#6366f1",  # indigo
    "#14b8a6",  # teal
    "#84cc16",  # lime
    "#6b7280",  # gray
)

DEFAULT_SETTINGS = {
    "workDuration": 25 * 60,
    "breakDuration": 5 * 60,
    "longBreakDuration": 15 * 60,
    "autoStartBreak": False,
    "soundEnabled": True,
    "collapsed": False,
    "collapsePosition": {"x": 100, "y": 100},
    "globalViewSort": {
        "mode": "zone",
        "priorityWeight": 0.4,
        "urgencyWeight": 0.6,
    },
    "globalViewLeafMode": False,
    "autoSaveEnabled": False,
    "autoSaveInterval": 30,
}

PREDEFINED_TEMPLATES = (
    {
        "id": "general",
        "name": "General",
        "description": "Basic work, study and life zones",
        "icon": "LayoutGrid",
        "zones": [
            {"name": "Work", "color": "#3b82f6", "order": 0},
            {"name": "Study", "color": "#8b5cf6", "order": 1},
            {"name": "Life", "color": "#22c55e", "order": 2},
        ],
    },
    {
        "id": "project",
        "name": "Project management",
        "description": "Several projects in parallel",
        "icon": "FolderKanban",
        "zones": [
            {"name": "Project A", "color": "#f59e0b", "order": 0},
            {"name": "Project B", "color": "#ec4899", "order": 1},
            {"name": "Project C", "color": "#06b6d4", "order": 2},
            {"name": "Other", "color": "#6b7280", "order": 3},
        ],
    },
    {
        "id": "dev",
        "name": "Development",
        "description": "Software development workflow",
        "icon": "Code",
        "zones": [
            {"name": "Development", "color": "#3b82f6", "order": 0},
            {"name": "Testing", "color": "#22c55e", "order": 1},
            {"name": "Docs", "color": "#f59e0b", "order": 2},
            {"name": "Bug fixes", "color": "#ef4444", "order": 3},
        ],
    },
    {
        "id": "blank",
        "name": "Blank",
        "description": "Start from scratch",
        "icon": "FileX",
        "zones": [],
    },
)
