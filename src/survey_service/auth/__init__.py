"""
Caller identity and bearer token authentication.
"""
