"""
Tasks plus their assignments, comments and status history.
"""
