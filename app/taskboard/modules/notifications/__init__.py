"""
In-app notifications and per-member delivery preferences.
"""
