"""
Logging, error tracking and run reporting utilities.
"""
