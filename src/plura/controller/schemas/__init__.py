"""API schemas for request/response serialization.

Pydantic envelopes for error and paginated responses plus small validation
helpers shared by route handlers.
"""
