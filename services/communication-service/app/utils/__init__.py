"""
Communication service utilities
"""
