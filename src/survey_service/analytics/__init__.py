"""
Anonymized survey response analytics.
"""
