"""
Core functionality for the income interpolation pipeline.

This package contains the local regression (LOESS) used to interpolate
missing years and extrapolate the forecast year.
"""
