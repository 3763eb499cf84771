"""
Resilient outbound HTTP client library.

This library provides:
- A verb based async HTTP client facade
- Retrying request execution with pluggable backoff
- Request/response/error interceptors
- Interchangeable httpx and aiohttp transports
- Logging, telemetry and configuration helpers
"""

__version__ = "1.0.0"
__author__ = "BPT Team"
