"""
Hub: the process-wide collaborators, created once and handed around.
Owns the secret bundle, the content cache, the connection registry and the
push transport.
"""

from config import Secrets, WEBSOCKET_ENDPOINT, PUSH_TOKEN
from connections import ConnectionRegistry
from content_cache import ContentCache
from pipeline.notify import GatewayPusher
from providers import build_providers


class Hub:

    def __init__(self, cache=None, secrets=None, registry=None, pusher=None,
                 provider_factory=None, websocket_endpoint=None):
        self.secrets = secrets or Secrets()
        self.cache = cache or ContentCache()
        self.registry = registry or ConnectionRegistry()
        endpoint = websocket_endpoint if websocket_endpoint is not None else WEBSOCKET_ENDPOINT
        if pusher is None and endpoint:
            pusher = GatewayPusher(endpoint, token=PUSH_TOKEN or None)
        self.pusher = pusher
        self._provider_factory = provider_factory

    def providers(self, kind, section=None):
        """Cascade for `kind` in priority order. Tests swap in a factory."""
        if self._provider_factory is not None:
            return self._provider_factory(kind, section)
        return build_providers(kind, self.secrets, section=section)
