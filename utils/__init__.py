"""
Utility package initialization.
"""
