"""
Shared infrastructure: configuration, logging, request context, HTTP client.
"""
