"""
Domain layer - pure business logic.

CRITICAL: No imports from infrastructure, application, or api layers.
"""
