"""API-specific request/response models.

Modules:
- common: error re-exports and health response
- webhooks: webhook acknowledgment
"""

__all__: list[str] = []
