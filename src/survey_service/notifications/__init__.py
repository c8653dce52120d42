"""
Notifications service client.
"""
