"""
Core modules for AZ Cost Guard.

This package contains the estimate parser, the fallback generator,
IaC file selection and the estimation orchestrator.
"""
