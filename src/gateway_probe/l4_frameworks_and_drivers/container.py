"""Dependency container — composition root for wiring all layers together."""

from __future__ import annotations

from gateway_probe.l1_entities.gateway_config import GatewayConfig
from gateway_probe.l2_use_cases.api_probe_use_case import RunApiProbesUseCase
from gateway_probe.l2_use_cases.chat_session_use_case import ChatSessionUseCase
from gateway_probe.l2_use_cases.ports.connectivity_checker import ConnectivityChecker
from gateway_probe.l2_use_cases.realtime_conversation_use_case import RealtimeConversationUseCase
from gateway_probe.l3_interface_adapters.controllers.voice_recorder import VoiceRecorder
from gateway_probe.l3_interface_adapters.gateways.httpx_chat_transport import HttpxChatTransport
from gateway_probe.l3_interface_adapters.gateways.openai_gateway_preflight import OpenAIGatewayPreflight
from gateway_probe.l3_interface_adapters.gateways.sounddevice_microphone import SounddeviceMicrophone
from gateway_probe.l3_interface_adapters.gateways.websocket_realtime_session import WebSocketRealtimeSession


class DependencyContainer:
    """Creates and wires all concrete instances. Easy to override for testing."""

    def __init__(self, config: GatewayConfig) -> None:
        self.config = config
        self.chat_transport = HttpxChatTransport(config)
        self.preflight: ConnectivityChecker = OpenAIGatewayPreflight(config)

    def chat_session(self) -> ChatSessionUseCase:
        return ChatSessionUseCase(self.chat_transport)

    def api_probes(self) -> RunApiProbesUseCase:
        return RunApiProbesUseCase(self.chat_transport)

    def realtime_session(self, *, direct: bool = False, header_auth: bool = False) -> WebSocketRealtimeSession:
        return WebSocketRealtimeSession(self.config, direct=direct, header_auth=header_auth)

    @staticmethod
    def realtime_conversation(session: WebSocketRealtimeSession) -> RealtimeConversationUseCase:
        return RealtimeConversationUseCase(session)

    @staticmethod
    def voice_recorder(session: WebSocketRealtimeSession) -> VoiceRecorder:
        return VoiceRecorder(session, SounddeviceMicrophone)

    async def aclose(self) -> None:
        await self.chat_transport.aclose()
