"""
bootcore - Property-Based Testing Suite

Property-based testing using Hypothesis for name forms and component
resolution.
"""
