"""
Command implementations for the kusari CLI.
"""
