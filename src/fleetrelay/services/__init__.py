"""
Fleet Relay services
"""

from .webhook_service import WebhookService, create_app, run_server

__all__ = ["WebhookService", "create_app", "run_server"]
