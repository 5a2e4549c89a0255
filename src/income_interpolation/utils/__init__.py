"""
Utility functions for the income interpolation pipeline.

This package contains configuration loading, data validation and the
error types raised by each stage, and chart rendering.
"""
