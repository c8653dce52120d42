"""
Alert contacts and survey alerts.
"""
