"""
Configuration management for the lab toolkit.

Contains Pydantic settings that work across local-dev, aws-mock, and aws-prod
deployment modes.
"""
