"""
Configuration for the sample web applications.
"""
