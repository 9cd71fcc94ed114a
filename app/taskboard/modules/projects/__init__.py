"""
Projects and their member rosters.
"""
