"""structlog and ASGI integration.

Scope frames feed structlog events through a processor, the same way
``structlog.contextvars`` feeds bound context vars.
"""
