"""
Code/name catalogs (task management roles, task statuses, priorities).
"""
