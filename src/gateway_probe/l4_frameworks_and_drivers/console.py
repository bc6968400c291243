"""Terminal output helpers — timestamped, coloured status lines."""

from __future__ import annotations

from datetime import datetime, timezone

import click


def _emit(message: str, fg: str | None = None, *, err: bool = False) -> None:
    stamp = datetime.now(timezone.utc).isoformat(timespec='milliseconds')
    click.secho(f'[{stamp}] {message}', fg=fg, err=err)


def info(message: str) -> None:
    _emit(f'ℹ️  {message}', 'cyan')


def success(message: str) -> None:
    _emit(f'✅ {message}', 'green')


def warning(message: str) -> None:
    _emit(f'⚠️  {message}', 'yellow')


def error(message: str) -> None:
    _emit(f'❌ {message}', 'red', err=True)


def sent(message: str) -> None:
    _emit(f'📤 {message}', 'blue')


def received(message: str) -> None:
    _emit(f'📥 {message}', 'magenta')
