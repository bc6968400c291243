"""Gateway configuration entity — endpoint composition and credential policy.

Every URL, header and WebSocket subprotocol sent to the gateway is derived
here, so the HTTP and WebSocket transports can never disagree about where
they connect or which credentials they carry.
"""

from __future__ import annotations

from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from gateway_probe.l1_entities.errors import ConfigurationError

DEFAULT_HOST = 'gateway.ai.cloudflare.com'
DEFAULT_PROVIDER = 'openai'
DEFAULT_CHAT_MODEL = 'gpt-4o-mini'
DEFAULT_REALTIME_MODEL = 'gpt-4o-mini-realtime-preview'
DEFAULT_VOICE = 'alloy'

DIRECT_HTTP_BASE_URL = 'https://api.openai.com/v1'
DIRECT_WEBSOCKET_URL = 'wss://api.openai.com/v1/realtime'

REALTIME_PROTOCOL = 'realtime'
INSECURE_KEY_PREFIX = 'insecure-api-key.'
GATEWAY_AUTH_PREFIX = 'cf-aig-authorization.'
GATEWAY_AUTH_HEADER = 'cf-aig-authorization'


class GatewayConfig(BaseModel):
    """Identifiers and credentials for one gateway.

    Field aliases are camelCase so the persisted record keeps the shape
    ``{accountId, gatewayId, apiKey, authToken, model, voice, ...}``.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    account_id: str = ''
    gateway_id: str = ''
    api_key: str = ''
    auth_token: str = ''
    use_auth_gateway: bool = False
    use_insecure_subprotocol: bool = False
    model: str = DEFAULT_CHAT_MODEL
    realtime_model: str = DEFAULT_REALTIME_MODEL
    voice: str = DEFAULT_VOICE
    host: str = DEFAULT_HOST
    provider: str = DEFAULT_PROVIDER

    def _require_ids(self) -> None:
        if not self.account_id or not self.gateway_id:
            raise ConfigurationError('Cloudflare Account ID and Gateway ID are required')

    def derive_http_base_url(self) -> str:
        self._require_ids()
        return f'https://{self.host}/v1/{self.account_id}/{self.gateway_id}/{self.provider}'

    def derive_websocket_base_url(self, model: str | None = None) -> str:
        """Gateway realtime endpoint, with ``?model=`` appended when *model* is given."""
        self._require_ids()
        url = f'wss://{self.host}/v1/{self.account_id}/{self.gateway_id}/{self.provider}/realtime'
        if model:
            url += '?' + urlencode({'model': model})
        return url

    def derive_direct_websocket_url(self, model: str | None = None) -> str:
        """Provider realtime endpoint, bypassing the gateway."""
        if not self.api_key:
            raise ConfigurationError('OpenAI API Key is required for a direct connection')
        url = DIRECT_WEBSOCKET_URL
        if model:
            url += '?' + urlencode({'model': model})
        return url

    def build_http_headers(self) -> dict[str, str]:
        headers = {'Content-Type': 'application/json'}
        if self.api_key:
            headers['Authorization'] = f'Bearer {self.api_key}'
        if self.use_auth_gateway and self.auth_token:
            headers[GATEWAY_AUTH_HEADER] = f'Bearer {self.auth_token}'
        return headers

    def build_websocket_headers(self) -> dict[str, str]:
        """Handshake headers for clients that can set them (browsers cannot)."""
        headers: dict[str, str] = {}
        if self.api_key:
            headers['Authorization'] = f'Bearer {self.api_key}'
        if self.use_auth_gateway and self.auth_token:
            headers[GATEWAY_AUTH_HEADER] = f'Bearer {self.auth_token}'
        headers['OpenAI-Beta'] = 'realtime=v1'
        return headers

    def build_websocket_subprotocols(self) -> list[str]:
        """Ordered subprotocol list for the gateway realtime handshake.

        The raw API key is only embedded when ``use_insecure_subprotocol`` is
        set. The gateway auth token is appended whenever present, but on its
        own the gateway rejects the session (close code 4001).
        """
        protocols = [REALTIME_PROTOCOL]
        if self.use_insecure_subprotocol and self.api_key:
            protocols.append(f'{INSECURE_KEY_PREFIX}{self.api_key}')
        protocols.append(f'{self.provider}-beta.realtime-v1')
        if self.auth_token:
            protocols.append(f'{GATEWAY_AUTH_PREFIX}{self.auth_token}')
        return protocols

    def build_direct_subprotocols(self) -> list[str]:
        """Subprotocols for the direct provider endpoint: the key is the only credential."""
        protocols = [REALTIME_PROTOCOL]
        if self.api_key:
            protocols.append(f'{INSECURE_KEY_PREFIX}{self.api_key}')
        protocols.append(f'{self.provider}-beta.realtime-v1')
        return protocols

    def validation_errors(self) -> list[str]:
        errors = []
        if not self.account_id:
            errors.append('Cloudflare Account ID is required')
        if not self.gateway_id:
            errors.append('Gateway ID is required')
        if not self.api_key:
            errors.append('OpenAI API Key is required')
        if self.use_auth_gateway and not self.auth_token:
            errors.append('CF AI Gateway Auth Token is required when using Authenticated Gateway')
        return errors


def redact_subprotocol(protocol: str) -> str:
    """Shorten subprotocols that carry credentials before they reach a log."""
    for prefix in (INSECURE_KEY_PREFIX, GATEWAY_AUTH_PREFIX):
        if protocol.startswith(prefix):
            return f'{prefix}{protocol[len(prefix) : len(prefix) + 4]}...'
    return protocol
