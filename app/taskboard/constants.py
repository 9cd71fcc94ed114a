"""
Central constants for the Taskboard application.
"""
from __future__ import annotations

ROLES = ("tpm", "pm", "pmo", "developer", "designer", "qa")

ALL_ROLES = frozenset(ROLES)

# Roles that own projects/boards and moderate other members' content.
MANAGER_ROLES = frozenset({"tpm", "pm", "pmo"})

ROLE_LABELS = {
    "tpm": "Technical Project Manager",
    "pm": "Project Manager",
    "pmo": "Project Management Office",
    "developer": "Developer",
    "designer": "Designer",
    "qa": "Quality Assurance",
}

# URL segment of a member directory -> role stored on the member row
DIRECTORY_SEGMENTS = {
    "tpms": "tpm",
    "pms": "pm",
    "pmos": "pmo",
    "developers": "developer",
    "designers": "designer",
    "qas": "qa",
}

# caller role -> directory segments it may browse
DIRECTORY_VISIBILITY = {
    "tpm": frozenset({"tpms", "developers", "designers", "qas"}),
    "pm": frozenset({"tpms", "pms", "developers", "designers", "qas"}),
    "pmo": frozenset({"tpms", "pmos", "developers", "designers", "qas"}),
    "developer": frozenset({"developers", "designers"}),
    "designer": frozenset({"designers"}),
    "qa": frozenset({"designers", "qas"}),
}

DELIVERY_METHODS = ("email", "push", "sms", "in_app")

MIN_PASSWORD_LENGTH = 8
