"""
Promotional campaign order capture backend.
"""
