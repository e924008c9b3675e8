# Middleware package init
"""
EventHub Backend — Middleware Package
=======================================

Cross-cutting concerns applied to every request, outermost first:

    Request → [Rate Limit] → [Request ID] → [Access Log] → [GZip] → [CORS] → route

Rate limiting runs first so rejected clients cost nothing further; the
access log sits inside the request-id middleware so every line carries the
correlation id.
"""
