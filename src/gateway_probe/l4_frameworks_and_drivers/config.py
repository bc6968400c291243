"""Infrastructure config — defaults and environment overlay for GatewayConfig."""

from __future__ import annotations

import copy
import os
from collections.abc import Mapping

from gateway_probe.l1_entities.gateway_config import GatewayConfig
from gateway_probe.l3_interface_adapters.gateways.yaml_config_store import deep_merge

CONFIG_DEFAULTS: dict = {
    'accountId': '',
    'gatewayId': '',
    'apiKey': '',
    'authToken': '',
    'useAuthGateway': False,
    'useInsecureSubprotocol': False,
    'model': 'gpt-4o-mini',
    'realtimeModel': 'gpt-4o-mini-realtime-preview',
    'voice': 'alloy',
}

# environment variable -> persisted record key
ENV_OVERRIDES: dict[str, str] = {
    'CF_ACCOUNT_ID': 'accountId',
    'CF_GATEWAY_ID': 'gatewayId',
    'OPENAI_API_KEY': 'apiKey',
    'CF_AUTH_TOKEN': 'authToken',
    'MODEL': 'model',
    'REALTIME_MODEL': 'realtimeModel',
    'VOICE': 'voice',
}


def env_overrides(environ: Mapping[str, str] | None = None) -> dict:
    """Collect non-empty overrides from the environment."""
    environ = os.environ if environ is None else environ
    return {key: environ[var] for var, key in ENV_OVERRIDES.items() if environ.get(var)}


def build_gateway_config(raw: dict, environ: Mapping[str, str] | None = None) -> GatewayConfig:
    """Layer defaults < saved record < environment, then validate."""
    merged = copy.deepcopy(CONFIG_DEFAULTS)
    deep_merge(merged, raw)
    deep_merge(merged, env_overrides(environ))
    return GatewayConfig.model_validate(merged)
