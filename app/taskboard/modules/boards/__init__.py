"""
Boards within a project, and board membership.
"""
