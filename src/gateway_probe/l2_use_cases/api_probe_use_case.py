"""Use case: automated checks of the chat completion API through the gateway."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from gateway_probe.l1_entities.chat_message import ChatMessage
from gateway_probe.l1_entities.chat_options import ChatOptions
from gateway_probe.l1_entities.errors import GatewayProbeError
from gateway_probe.l2_use_cases.ports.chat_transport import ChatTransport

log = logging.getLogger('gwp.probe')

PROBE_MODELS = ('gpt-3.5-turbo', 'gpt-4', 'gpt-4o-mini')
PROBE_TEMPERATURES = (0.0, 0.5, 1.0)


@dataclass(frozen=True)
class ProbeResult:
    name: str
    ok: bool
    detail: str


def _msg(role: str, content: str) -> ChatMessage:
    return ChatMessage(role=role, content=content)  # ty: ignore[invalid-argument-type] -- roles below are literals


class RunApiProbesUseCase:
    """Runs a fixed battery of stateless completions. Never touches a ConversationLog."""

    def __init__(self, transport: ChatTransport) -> None:
        self._transport = transport

    def _cases(self) -> list[tuple[str, list[ChatMessage], ChatOptions]]:
        cases = [
            (
                'Basic chat completion',
                [
                    _msg('system', 'You are a helpful assistant.'),
                    _msg('user', "Say hello and tell me you're working through Cloudflare Gateway!"),
                ],
                ChatOptions(),
            ),
        ]
        for model in PROBE_MODELS:
            cases.append(
                (
                    f'Model {model}',
                    [_msg('user', 'What model are you? Reply with just the model name.')],
                    ChatOptions(model=model),
                )
            )
        for temperature in PROBE_TEMPERATURES:
            cases.append(
                (
                    f'Temperature {temperature}',
                    [_msg('user', 'Generate a random number between 1 and 10.')],
                    ChatOptions(temperature=temperature),
                )
            )
        cases.append(
            (
                'System message',
                [
                    _msg('system', 'You are a pirate. Always respond in pirate speak.'),
                    _msg('user', 'How are you today?'),
                ],
                ChatOptions(),
            )
        )
        cases.append(
            (
                'Multi-turn conversation',
                [
                    _msg('user', 'Remember the number 42.'),
                    _msg('assistant', "I'll remember the number 42."),
                    _msg('user', 'What number did I ask you to remember?'),
                ],
                ChatOptions(),
            )
        )
        return cases

    async def execute(self) -> list[ProbeResult]:
        """Run every probe. A failing probe is reported, not raised."""
        results = []
        for name, messages, options in self._cases():
            try:
                response = await self._transport.complete(messages, options)
            except GatewayProbeError as e:
                log.warning('Probe %r failed: %s', name, e)
                results.append(ProbeResult(name=name, ok=False, detail=str(e)))
                continue
            results.append(ProbeResult(name=name, ok=True, detail=response.content))
        return results
