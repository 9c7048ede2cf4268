"""
Shared helpers without business logic.
"""
