"""
Remote code evaluation function.
"""
