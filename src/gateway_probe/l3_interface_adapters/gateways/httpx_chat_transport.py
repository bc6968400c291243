"""Gateway: chat completions over the gateway HTTP endpoint — implements ChatTransport port."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx

from gateway_probe.l1_entities.chat_message import ChatMessage
from gateway_probe.l1_entities.chat_options import ChatOptions
from gateway_probe.l1_entities.errors import GatewayHttpError, ProtocolDecodeError, TransportError
from gateway_probe.l1_entities.gateway_config import GatewayConfig
from gateway_probe.l2_use_cases.ports.chat_transport import ChatResponse, TokenUsage
from gateway_probe.l2_use_cases.utils.sse_accumulator import SseDeltaAccumulator

log = logging.getLogger('gwp.http')

DEFAULT_TIMEOUT = 60.0


class HttpxChatTransport:
    """POSTs chat completions to ``<gateway>/chat/completions`` with httpx.

    The config is read on every call, so a model switched between calls
    takes effect on the next request.
    """

    def __init__(
        self,
        config: GatewayConfig,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._config = config
        self._client = client
        self._timeout = timeout

    @property
    def url(self) -> str:
        return f'{self._config.derive_http_base_url()}/chat/completions'

    def _body(self, messages: list[ChatMessage], options: ChatOptions, *, stream: bool) -> dict[str, Any]:
        return {
            'model': options.model or self._config.model,
            'messages': [m.model_dump() for m in messages],
            'temperature': options.temperature,
            'max_tokens': options.max_tokens,
            'stream': stream,
        }

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def complete(self, messages: list[ChatMessage], options: ChatOptions) -> ChatResponse:
        url = self.url
        body = self._body(messages, options, stream=False)
        log.info('Chat completion request to: %s (model=%s)', url, body['model'])
        log.debug('Request body: %s', json.dumps(body, ensure_ascii=False))
        try:
            resp = await self._get_client().post(url, headers=self._config.build_http_headers(), json=body)
        except httpx.HTTPError as e:
            raise TransportError(f'Request to {url} failed: {e}') from e

        if not resp.is_success:
            log.warning('Gateway HTTP error %s: %s', resp.status_code, resp.text)
            raise GatewayHttpError(resp.status_code, resp.text)

        try:
            data = resp.json()
            message = data['choices'][0]['message']
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ProtocolDecodeError(f'Invalid response format: {resp.text[:200]}') from e
        log.debug('Response data: %s', resp.text)

        usage = None
        if isinstance(data.get('usage'), dict):
            usage = TokenUsage(
                prompt_tokens=data['usage'].get('prompt_tokens', 0),
                completion_tokens=data['usage'].get('completion_tokens', 0),
                total_tokens=data['usage'].get('total_tokens', 0),
            )
        return ChatResponse(
            content=message.get('content') or '',
            role=message.get('role') or 'assistant',
            usage=usage,
        )

    async def stream(self, messages: list[ChatMessage], options: ChatOptions) -> AsyncIterator[str]:
        url = self.url
        body = self._body(messages, options, stream=True)
        log.info('Streaming chat completion request to: %s (model=%s)', url, body['model'])
        accumulator = SseDeltaAccumulator()
        try:
            async with self._get_client().stream(
                'POST',
                url,
                headers=self._config.build_http_headers(),
                json=body,
            ) as resp:
                if not resp.is_success:
                    text = (await resp.aread()).decode('utf-8', errors='replace')
                    log.warning('Gateway HTTP error %s: %s', resp.status_code, text)
                    raise GatewayHttpError(resp.status_code, text)
                async for line in resp.aiter_lines():
                    delta = accumulator.feed(line)
                    if delta:
                        yield delta
                    if accumulator.done:
                        break
        except httpx.HTTPError as e:
            raise TransportError(f'Stream from {url} failed: {e}') from e

        if not accumulator.done:
            raise TransportError('Stream ended before the [DONE] sentinel')
        log.info('Stream complete: %d chars, %d malformed fragments skipped', len(accumulator.text), accumulator.skipped)
