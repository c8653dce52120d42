"""
Shared infrastructure: settings-driven database access, logging and errors.
"""
