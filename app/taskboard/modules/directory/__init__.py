"""
Member directory: per-role listings of member accounts.
"""
