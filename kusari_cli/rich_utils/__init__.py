"""
Rich console helpers.
"""
