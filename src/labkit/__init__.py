"""Toolkit for the AWS and Docker deployment labs."""

__version__ = "0.1.0"
