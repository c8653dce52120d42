"""
Calendar service client.
"""
