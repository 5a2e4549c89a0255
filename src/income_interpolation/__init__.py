"""
LOESS interpolation of annual median household income.

This package loads an annual income series, fills a missing historical year
and forecasts the next year with local regression, and renders bar charts
comparing the results for different smoothing spans.
"""
