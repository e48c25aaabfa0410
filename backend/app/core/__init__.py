"""
Core package - cross-cutting concerns.

Modules:
    config      - environment variables & settings
    logging     - structured JSON logging
    errors      - exception hierarchy & handlers
    middleware  - request ids, timing, access log
    health      - health check aggregation
    cache       - advisory weather cache (Redis / memory / none)
"""
