"""
Directus Slack Relay

A small FastAPI application that:
- receives Directus create/update/delete webhooks
- authenticates callers with a bcrypt-hashed shared key
- posts a readable summary to a Slack incoming webhook
"""

__version__ = "1.0.0"
__description__ = "Relay Directus change webhooks to Slack"
