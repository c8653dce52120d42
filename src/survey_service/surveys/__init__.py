"""
Surveys, survey responses and their authorization.
"""
