"""CLI entry point for gateway-probe."""

from __future__ import annotations

import asyncio
import json
import sys
from typing import TYPE_CHECKING

import click

from gateway_probe import __version__

if TYPE_CHECKING:
    from gateway_probe.l2_use_cases.ports.config_store import ConfigStore

CHAT_HELP = """Commands:
  /clear            Clear conversation history
  /history          Show conversation history
  /model <name>     Change model (no name shows the current one)
  /system <prompt>  Restart the conversation with a new system prompt
  /test             Run automated API checks
  /help             Show this help
  /quit             Exit"""

REALTIME_HELP = """Commands:
  /text <message>   Send a text message (bare text does the same)
  /json <json>      Send a raw JSON event
  /record           Start streaming microphone audio
  /stop             Stop recording, commit the audio and request a response
  /help             Show this help
  /quit             Exit"""


@click.group()
@click.option(
    '-c',
    '--config',
    'config_path',
    default=None,
    type=click.Path(dir_okay=False),
    help='Path to YAML config file.',
)
@click.option('--debug', is_flag=True, default=False, help='Verbose log file and raw event echo.')
@click.version_option(version=__version__)
@click.pass_context
def cli(ctx, config_path, debug):
    """gateway-probe -- reproduce Cloudflare AI Gateway auth over HTTP and WebSocket."""
    from gateway_probe.l3_interface_adapters.gateways.paths import (  # noqa: PLC0415 -- deferred: platformdirs not loaded on --help
        LOG_DIR,
    )
    from gateway_probe.l4_frameworks_and_drivers.logging_setup import (  # noqa: PLC0415 -- deferred: not needed for --help
        setup_file_logging,
    )

    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config_path
    ctx.obj['debug'] = debug
    if not ctx.resilient_parsing:
        setup_file_logging(LOG_DIR, debug=debug)


def _store(ctx) -> ConfigStore:
    from gateway_probe.l3_interface_adapters.gateways.yaml_config_store import (  # noqa: PLC0415 -- deferred: yaml stack not loaded on --help
        YamlConfigStore,
    )

    return YamlConfigStore(ctx.obj['config_path'])


def _load_config(ctx, overrides: dict | None = None):
    from pydantic import ValidationError  # noqa: PLC0415 -- deferred: not needed for --help

    from gateway_probe.l4_frameworks_and_drivers.config import (  # noqa: PLC0415 -- deferred: not needed for --help
        build_gateway_config,
    )

    try:
        raw = _store(ctx).load_raw()
        config = build_gateway_config(raw)
        if overrides:
            config = config.model_copy(update=overrides)
    except (FileNotFoundError, ValueError, ValidationError) as e:
        click.echo(f'Error: {e}', err=True)
        sys.exit(1)
    return config


def _require_valid(config) -> None:
    from gateway_probe.l4_frameworks_and_drivers import console  # noqa: PLC0415 -- deferred: not needed for --help

    errors = config.validation_errors()
    if not errors:
        return
    console.error('Configuration errors:')
    for err in errors:
        click.echo(f'  - {err}', err=True)
    click.echo("Set them with 'gateway-probe config save' or the CF_*/OPENAI_API_KEY environment variables.", err=True)
    sys.exit(1)


def _mask(value: str) -> str:
    if not value:
        return '(not set)'
    if len(value) <= 8:
        return '****'
    return f'{value[:4]}...{value[-4:]}'


# --- config ---


@cli.group()
def config():
    """Show or save the gateway configuration."""


@config.command('show')
@click.pass_context
def config_show(ctx):
    """Print the effective configuration with secrets masked."""
    from gateway_probe.l4_frameworks_and_drivers import console  # noqa: PLC0415 -- deferred: not needed for --help

    cfg = _load_config(ctx)
    click.echo(f'Config file: {_store(ctx).path}')
    for key, value in cfg.model_dump(by_alias=True).items():
        if key in ('apiKey', 'authToken'):
            value = _mask(value)
        click.echo(f'  {key}: {value}')
    for err in cfg.validation_errors():
        console.warning(err)


@config.command('save')
@click.option('--account-id', default=None, help='Cloudflare account ID.')
@click.option('--gateway-id', default=None, help='AI Gateway ID.')
@click.option('--api-key', default=None, help='OpenAI API key (BYOK).')
@click.option('--auth-token', default=None, help='Gateway auth token (cf-aig-authorization).')
@click.option('--use-auth-gateway/--no-use-auth-gateway', default=None, help='Gateway enforces its own auth.')
@click.option(
    '--insecure-subprotocol/--no-insecure-subprotocol',
    default=None,
    help='Embed the raw API key in a WebSocket subprotocol.',
)
@click.option('--model', default=None, help='Chat model.')
@click.option('--realtime-model', default=None, help='Realtime model.')
@click.option('--voice', default=None, help='Realtime voice.')
@click.pass_context
def config_save(
    ctx,
    account_id,
    gateway_id,
    api_key,
    auth_token,
    use_auth_gateway,
    insecure_subprotocol,
    model,
    realtime_model,
    voice,
):
    """Merge the given values onto the saved configuration."""
    from pydantic import ValidationError  # noqa: PLC0415 -- deferred: not needed for --help

    from gateway_probe.l4_frameworks_and_drivers import console  # noqa: PLC0415 -- deferred: not needed for --help

    updates = {
        'accountId': account_id,
        'gatewayId': gateway_id,
        'apiKey': api_key,
        'authToken': auth_token,
        'useAuthGateway': use_auth_gateway,
        'useInsecureSubprotocol': insecure_subprotocol,
        'model': model,
        'realtimeModel': realtime_model,
        'voice': voice,
    }
    updates = {k: v for k, v in updates.items() if v is not None}
    if not updates:
        click.echo('Nothing to save.', err=True)
        sys.exit(1)

    store = _store(ctx)
    try:
        saved = store.save(updates)
    except (ValueError, ValidationError) as e:
        click.echo(f'Error: {e}', err=True)
        sys.exit(1)
    console.success(f'Configuration saved to {store.path}')
    for err in saved.validation_errors():
        console.warning(err)


# --- preflight ---


@cli.command()
@click.pass_context
def preflight(ctx):
    """Check gateway reachability and model availability with the OpenAI SDK."""
    from gateway_probe.l4_frameworks_and_drivers import console  # noqa: PLC0415 -- deferred: not needed for --help
    from gateway_probe.l4_frameworks_and_drivers.container import (  # noqa: PLC0415 -- deferred: openai/httpx not loaded on --help
        DependencyContainer,
    )

    cfg = _load_config(ctx)
    _require_valid(cfg)
    container = DependencyContainer(cfg)

    ok, err = container.preflight.check_connectivity()
    if not ok:
        console.error(err)
        sys.exit(1)
    console.success(f'Gateway reachable at {cfg.derive_http_base_url()}')

    models = list(dict.fromkeys([cfg.model, cfg.realtime_model]))
    missing = container.preflight.check_models(models)
    for name in models:
        if name in missing:
            console.warning(f'Model not available: {name}')
        else:
            console.success(f'Model available: {name}')


# --- chat ---


@cli.command()
@click.option('--stream', is_flag=True, default=False, help='Stream replies over SSE.')
@click.option(
    '--mode',
    type=click.Choice(['tests', 'interactive', 'both']),
    default='both',
    show_default=True,
    help='Run automated checks, an interactive chat, or both.',
)
@click.pass_context
def chat(ctx, stream, mode):
    """Chat completions through the gateway HTTP endpoint."""
    from gateway_probe.l4_frameworks_and_drivers.container import (  # noqa: PLC0415 -- deferred: httpx not loaded on --help
        DependencyContainer,
    )

    cfg = _load_config(ctx)
    _require_valid(cfg)
    container = DependencyContainer(cfg)
    failures = asyncio.run(_run_chat(container, stream=stream, mode=mode))
    if mode == 'tests' and failures:
        sys.exit(1)


async def _run_chat(container, *, stream: bool, mode: str) -> int:
    from gateway_probe.l4_frameworks_and_drivers import console  # noqa: PLC0415 -- deferred: not needed for --help

    console.info(f'Gateway URL: {container.config.derive_http_base_url()}')
    failures = 0
    try:
        if mode in ('tests', 'both'):
            failures = await _run_probes(container)
        if mode in ('interactive', 'both'):
            await _chat_loop(container, stream=stream)
    finally:
        await container.aclose()
    return failures


async def _run_probes(container) -> int:
    from gateway_probe.l4_frameworks_and_drivers import console  # noqa: PLC0415 -- deferred: not needed for --help

    console.info('Running automated API checks...')
    results = await container.api_probes().execute()
    for result in results:
        if result.ok:
            console.success(f'{result.name}: {result.detail}')
        else:
            console.error(f'{result.name}: {result.detail}')
    failures = sum(1 for r in results if not r.ok)
    console.info(f'{len(results) - failures}/{len(results)} checks passed')
    return failures


async def _chat_loop(container, *, stream: bool) -> None:
    from gateway_probe.l1_entities.chat_options import ChatOptions  # noqa: PLC0415 -- deferred: not needed for --help
    from gateway_probe.l1_entities.errors import GatewayProbeError  # noqa: PLC0415 -- deferred: not needed for --help
    from gateway_probe.l4_frameworks_and_drivers import console  # noqa: PLC0415 -- deferred: not needed for --help

    session = container.chat_session()
    click.echo(CHAT_HELP)
    while True:
        line = await _prompt('You')
        if line is None:
            break
        line = line.strip()
        if not line:
            continue

        command, _, arg = line.partition(' ')
        arg = arg.strip()
        if command == '/quit':
            break
        if command == '/help':
            click.echo(CHAT_HELP)
        elif command == '/clear':
            session.reset()
            console.info('Conversation cleared')
        elif command == '/history':
            for message in session.history():
                click.echo(f'{click.style(message.role, bold=True)}: {message.content}')
        elif command == '/model':
            if arg:
                session.set_model(arg)
                console.info(f'Model changed to: {arg}')
            else:
                console.info(f'Current model: {session.model or container.config.model}')
        elif command == '/system':
            if not arg:
                console.warning('Usage: /system <prompt>')
                continue
            session.reset(arg)
            console.info('System prompt updated, conversation restarted')
        elif command == '/test':
            await _run_probes(container)
        elif command.startswith('/'):
            console.warning(f'Unknown command: {command}')
        else:
            try:
                if stream:
                    click.echo(click.style('Assistant: ', fg='green'), nl=False)
                    await session.send(
                        line,
                        ChatOptions(stream=True),
                        on_delta=lambda d: click.echo(d, nl=False),
                    )
                    click.echo()
                else:
                    reply = await session.send(line, ChatOptions())
                    click.echo(f'{click.style("Assistant:", fg="green")} {reply}')
            except GatewayProbeError as e:
                if stream:
                    click.echo()
                console.error(str(e))


async def _prompt(label: str) -> str | None:
    """Read one line without blocking the event loop. None on EOF/Ctrl-C."""
    try:
        return await asyncio.to_thread(click.prompt, label, default='', show_default=False, prompt_suffix='> ')
    except click.exceptions.Abort:
        return None


# --- realtime ---


@cli.command()
@click.option(
    '--insecure/--no-insecure',
    default=None,
    help='Override whether the API key rides in the insecure subprotocol.',
)
@click.option('--direct', is_flag=True, default=False, help='Connect to the provider directly, bypassing the gateway.')
@click.option('--header-auth', is_flag=True, default=False, help='Also send credentials as handshake headers.')
@click.pass_context
def realtime(ctx, insecure, direct, header_auth):
    """Realtime session through the gateway WebSocket endpoint."""
    from gateway_probe.l4_frameworks_and_drivers.container import (  # noqa: PLC0415 -- deferred: websockets not loaded on --help
        DependencyContainer,
    )

    overrides = {'use_insecure_subprotocol': insecure} if insecure is not None else None
    cfg = _load_config(ctx, overrides)
    if not direct:
        _require_valid(cfg)
    container = DependencyContainer(cfg)
    code = asyncio.run(_run_realtime(container, direct=direct, header_auth=header_auth, debug=ctx.obj['debug']))
    if code:
        sys.exit(code)


async def _run_realtime(container, *, direct: bool, header_auth: bool, debug: bool) -> int:
    from gateway_probe.l1_entities.errors import (  # noqa: PLC0415 -- deferred: not needed for --help
        ConfigurationError,
        ConnectError,
    )
    from gateway_probe.l1_entities.gateway_config import redact_subprotocol  # noqa: PLC0415 -- deferred: not needed for --help
    from gateway_probe.l4_frameworks_and_drivers import console  # noqa: PLC0415 -- deferred: not needed for --help

    session = container.realtime_session(direct=direct, header_auth=header_auth)
    try:
        url, protocols, _ = session.handshake()
    except ConfigurationError as e:
        console.error(str(e))
        return 1
    console.info(f'Connecting to: {url}')
    console.info(f'Subprotocols: {", ".join(redact_subprotocol(p) for p in protocols)}')
    if direct:
        console.warning('Direct mode: the API key is sent in clear text as a subprotocol')

    try:
        await session.connect()
    except ConnectError as e:
        console.error(str(e))
        hint = e.diagnosis.hint if e.diagnosis is not None else None
        if e.classification is not None:
            console.warning(f'Classification: {e.classification.value}')
        if hint:
            console.warning(hint)
        return 1
    console.success(f'Connected (subprotocol: {session.negotiated_subprotocol or "none"})')

    conversation = container.realtime_conversation(session)
    recorder = container.voice_recorder(session)
    runner = asyncio.create_task(conversation.run(on_event=lambda event: _print_event(event, debug=debug)))
    try:
        await _realtime_loop(session, conversation, recorder, runner)
    finally:
        await session.disconnect()
        await runner

    closed = session.last_close
    if closed is not None and closed.classification is not None:
        console.error(f'Session ended with {closed.describe()} ({closed.classification.value})')
        return 1
    return 0


async def _realtime_loop(session, conversation, recorder, runner) -> None:
    from gateway_probe.l1_entities.errors import GatewayProbeError  # noqa: PLC0415 -- deferred: not needed for --help
    from gateway_probe.l4_frameworks_and_drivers import console  # noqa: PLC0415 -- deferred: not needed for --help

    click.echo(REALTIME_HELP)
    while not runner.done():
        line = await _prompt('You')
        if line is None or runner.done():
            break
        line = line.strip()
        if not line:
            continue

        command, _, arg = line.partition(' ')
        arg = arg.strip()
        if command == '/quit':
            break
        try:
            if command == '/help':
                click.echo(REALTIME_HELP)
            elif command == '/text':
                if not arg:
                    console.warning('Usage: /text <message>')
                    continue
                await conversation.send_text(arg, ['text'])
                console.sent(f'Text: {arg}')
            elif command == '/json':
                try:
                    event = json.loads(arg)
                except ValueError as e:
                    console.error(f'Invalid JSON: {e}')
                    continue
                if not isinstance(event, dict):
                    console.error('Event must be a JSON object')
                    continue
                await session.send_event(event)
                console.sent(f'Event: {event.get("type")}')
            elif command == '/record':
                await recorder.start()
                console.info('Recording... type /stop to send')
            elif command == '/stop':
                if not recorder.is_recording:
                    console.warning('Not recording')
                    continue
                await recorder.stop()
                console.sent(f'Audio committed ({recorder.chunks_sent} chunks)')
            elif command.startswith('/'):
                console.warning(f'Unknown command: {command}')
            else:
                await conversation.send_text(line, ['text'])
                console.sent(f'Text: {line}')
        except GatewayProbeError as e:
            console.error(str(e))


def _print_event(event, *, debug: bool = False) -> None:
    from gateway_probe.l1_entities import realtime_events as ev  # noqa: PLC0415 -- deferred: not needed for --help
    from gateway_probe.l4_frameworks_and_drivers import console  # noqa: PLC0415 -- deferred: not needed for --help

    if debug and not isinstance(event, ev.SessionClosed):
        console.received(event.model_dump_json())
    if isinstance(event, ev.SessionCreated):
        console.success(f'Session created: {event.session_id}')
    elif isinstance(event, ev.SessionUpdated):
        console.info('Session updated')
    elif isinstance(event, ev.ResponseTextDelta):
        click.echo(event.delta, nl=False)
    elif isinstance(event, ev.ResponseTextDone):
        click.echo()
    elif isinstance(event, ev.ConversationItemCreated):
        if event.text:
            console.received(f'Item: {event.text}')
    elif isinstance(event, ev.ConversationInterrupted):
        click.echo()
        console.warning('Response interrupted')
    elif isinstance(event, ev.ServerError):
        console.error(f'Server error: {event.message}')
    elif isinstance(event, ev.SessionClosed):
        console.warning(f'Connection closed: {event.diagnosis.describe()}')
        if event.diagnosis.hint:
            console.warning(event.diagnosis.hint)
    elif isinstance(event, ev.ResponseDone):
        console.received('Response complete')
