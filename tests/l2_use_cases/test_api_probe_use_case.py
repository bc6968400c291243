"""Tests for RunApiProbesUseCase."""

import pytest

from gateway_probe.l1_entities.errors import GatewayHttpError
from gateway_probe.l2_use_cases.api_probe_use_case import RunApiProbesUseCase
from tests.conftest import FakeChatTransport


class TestRunApiProbes:
    @pytest.mark.asyncio
    async def test_all_probes_pass(self):
        fake = FakeChatTransport(reply='ok')
        results = await RunApiProbesUseCase(fake).execute()

        assert len(results) == 9
        assert all(r.ok for r in results)
        assert [r.name for r in results][:2] == ['Basic chat completion', 'Model gpt-3.5-turbo']

    @pytest.mark.asyncio
    async def test_probe_options(self):
        fake = FakeChatTransport()
        await RunApiProbesUseCase(fake).execute()

        models = [opts.model for _, opts in fake.complete_calls]
        temps = [opts.temperature for _, opts in fake.complete_calls]
        assert models[1:4] == ['gpt-3.5-turbo', 'gpt-4', 'gpt-4o-mini']
        assert temps[4:7] == [0.0, 0.5, 1.0]
        multi_turn, _ = fake.complete_calls[-1]
        assert [m.role for m in multi_turn] == ['user', 'assistant', 'user']

    @pytest.mark.asyncio
    async def test_failure_reported_not_raised(self):
        fake = FakeChatTransport(error=GatewayHttpError(401, 'Unauthorized'))
        results = await RunApiProbesUseCase(fake).execute()

        assert len(results) == 9
        assert not any(r.ok for r in results)
        assert results[0].detail == 'HTTP 401: Unauthorized'
