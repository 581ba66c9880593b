"""
AZ Cost Guard.

Estimates the monthly Azure cost of infrastructure-as-code changes in a pull request.
"""

__version__ = "0.1.0"
