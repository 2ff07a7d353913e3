"""
Configuration for the IssueLens project.
"""

import os

# Catalog location (defaults, can be overridden via CLI or environment)
DATA_DIR_ENV_VAR = "ISSUELENS_DATA_DIR"
DEFAULT_DATA_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "data")
ISSUES_FILE = "issues.json"
RULES_FILE = "alignment_rules.json"
COMPANIES_FILE = "companies.json"

# File paths (defaults, can be overridden via CLI)
DEFAULT_OUTPUT_FILE = "dashboard.jsonl"
DEFAULT_PREFERENCES_FILE = "preferences.json"

# Stance scale collected during onboarding: 1-2 lean left, 3 neutral, 4-5 lean right
STANCE_MIN = 1
STANCE_MAX = 5
STANCE_LEFT_MAX = 2
STANCE_RIGHT_MIN = 4

# Log file (appended to on every render, relative to the working directory)
LOG_FILE = "issuelens.log"
