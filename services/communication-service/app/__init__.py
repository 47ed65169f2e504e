"""
Communication service application package
"""
