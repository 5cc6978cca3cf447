"""
Core Shared Utilities
Configuration, error handling and retry policy shared by the NSE client and the API.
"""

__all__ = ["config", "error_map", "retry"]
