# Copyright 2026 monitorcmd
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# This file was created or modified with the assistance of an AI (Large Language Model).
# Review required for correctness, security, and licensing.

from __future__ import annotations

import json
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import typer
import yaml

from monitorcmd_py.command.model import AcknowledgeProblem, Command, RawCommand, ScheduleCheck
from monitorcmd_py.command.renderer import CommandFileRenderer
from monitorcmd_py.config import SiteConfig, default_config_path
from monitorcmd_py.errors import CommandTransportError, ConfigurationError
from monitorcmd_py.transport.factory import build_transport

app = typer.Typer(help="Send external commands to a remote monitoring daemon")

_MONITORCMD_HANDLER_ATTR = "_monitorcmd_handler"


class CliUsageError(ValueError):
    pass


class JsonLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "event": getattr(record, "event", "log"),
            "command": getattr(record, "command", ""),
            "target": getattr(record, "target", ""),
            "status": getattr(record, "status", ""),
            "elapsed_ms": getattr(record, "elapsed_ms", None),
            "error_code": getattr(record, "error_code", None),
        }
        for key in ("transport", "instance", "external_command", "error_type"):
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value
        return json.dumps(payload, ensure_ascii=False)


def _classify_error(exc: BaseException) -> str:
    if isinstance(exc, CommandTransportError):
        return exc.code
    if isinstance(exc, (ValueError, yaml.YAMLError)):
        return "CONFIG_ERROR"
    return "UNEXPECTED_ERROR"


def _event_extra(
    *,
    event: str,
    command: str,
    status: str,
    target: str = "",
    elapsed_seconds: float | None = None,
    error_code: str | None = None,
) -> dict[str, object]:
    payload: dict[str, object] = {
        "event": event,
        "command": command,
        "status": status,
        "target": target,
        "error_code": error_code,
        "elapsed_ms": int((elapsed_seconds or 0.0) * 1000)
        if elapsed_seconds is not None
        else None,
    }
    if target:
        payload["transport"] = target
    return payload


def _load_config(path: Optional[Path]) -> SiteConfig:
    config_path = path or default_config_path()
    try:
        return SiteConfig.load(config_path)
    except FileNotFoundError as exc:
        raise CliUsageError(f"{exc}; pass --config or create {default_config_path()}") from exc
    except (ValueError, yaml.YAMLError) as exc:
        raise CliUsageError(f"Invalid monitorcmd config '{config_path}': {exc}") from exc


def _configure_logging(
    *,
    debug: bool,
    info: bool,
    warn: bool,
    logfile: Optional[Path],
    log_format: str,
) -> None:
    level = next(
        (chosen for enabled, chosen in ((debug, logging.DEBUG), (info, logging.INFO), (warn, logging.WARNING)) if enabled),
        logging.INFO,
    )
    handler: logging.Handler = logging.FileHandler(logfile) if logfile else logging.StreamHandler()
    handler.setFormatter(
        JsonLogFormatter()
        if log_format == "json"
        else logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    setattr(handler, _MONITORCMD_HANDLER_ATTR, True)

    # Replace only the handler installed by an earlier call.
    root = logging.getLogger()
    for existing in [h for h in root.handlers if getattr(h, _MONITORCMD_HANDLER_ATTR, False)]:
        root.removeHandler(existing)
        existing.close()
    root.setLevel(level)
    root.addHandler(handler)


def _deliver(
    command: Command,
    *,
    cli_command: str,
    config: Optional[Path],
    transport: Optional[str],
) -> None:
    logger = logging.getLogger(__name__)
    site = _load_config(config)
    started = time.monotonic()
    target = transport or ""
    try:
        transport_config = site.get_transport(transport)
        target = transport_config.name
        with build_transport(transport_config, site) as channel:
            channel.send(command)
    except (CommandTransportError, ConfigurationError) as exc:
        logger.exception(
            "Failed to send external command %s",
            command.name,
            extra={
                **_event_extra(
                    event="send_command",
                    command=cli_command,
                    status="error",
                    target=target,
                    elapsed_seconds=time.monotonic() - started,
                    error_code=_classify_error(exc),
                ),
                "error_type": type(exc).__name__,
                "external_command": command.name,
            },
        )
        raise
    logger.info(
        "Sent external command",
        extra={
            **_event_extra(
                event="send_command",
                command=cli_command,
                status="success",
                target=target,
                elapsed_seconds=time.monotonic() - started,
            ),
            "instance": transport_config.instance,
            "external_command": command.name,
        },
    )


@app.command("send")
def send(
    name: str = typer.Argument(..., help="External command keyword, e.g. SCHEDULE_HOST_CHECK"),
    arguments: Optional[list[str]] = typer.Argument(None),
    transport: Optional[str] = typer.Option(None, "--transport"),
    config: Optional[Path] = typer.Option(None, "--config"),
    debug: bool = typer.Option(False, "--debug"),
    info: bool = typer.Option(False, "--info"),
    warn: bool = typer.Option(False, "--warn"),
    logfile: Optional[Path] = typer.Option(None, "--logfile"),
    log_format: str = typer.Option("text", "--log-format"),
) -> None:
    """Send an arbitrary external command with its arguments."""
    _configure_logging(
        debug=debug, info=info, warn=warn, logfile=logfile, log_format=log_format
    )
    _deliver(
        RawCommand(name, list(arguments or [])),
        cli_command="send",
        config=config,
        transport=transport,
    )


@app.command("acknowledge")
def acknowledge(
    host: str = typer.Option(..., "--host"),
    author: str = typer.Option(..., "--author"),
    comment: str = typer.Option(..., "--comment"),
    service: Optional[str] = typer.Option(None, "--service"),
    sticky: bool = typer.Option(False, "--sticky"),
    notify: bool = typer.Option(False, "--notify"),
    persistent: bool = typer.Option(False, "--persistent"),
    expire: Optional[int] = typer.Option(None, "--expire", help="Unix time the acknowledgement expires."),
    transport: Optional[str] = typer.Option(None, "--transport"),
    config: Optional[Path] = typer.Option(None, "--config"),
    debug: bool = typer.Option(False, "--debug"),
    info: bool = typer.Option(False, "--info"),
    warn: bool = typer.Option(False, "--warn"),
    logfile: Optional[Path] = typer.Option(None, "--logfile"),
    log_format: str = typer.Option("text", "--log-format"),
) -> None:
    """Acknowledge a host or service problem."""
    _configure_logging(
        debug=debug, info=info, warn=warn, logfile=logfile, log_format=log_format
    )
    _deliver(
        AcknowledgeProblem(
            host=host,
            author=author,
            comment=comment,
            service=service,
            sticky=sticky,
            notify=notify,
            persistent=persistent,
            expire_time=expire,
        ),
        cli_command="acknowledge",
        config=config,
        transport=transport,
    )


@app.command("schedule-check")
def schedule_check(
    host: str = typer.Option(..., "--host"),
    service: Optional[str] = typer.Option(None, "--service"),
    at: Optional[int] = typer.Option(None, "--at", help="Unix time of the check; defaults to now."),
    forced: bool = typer.Option(False, "--forced"),
    transport: Optional[str] = typer.Option(None, "--transport"),
    config: Optional[Path] = typer.Option(None, "--config"),
    debug: bool = typer.Option(False, "--debug"),
    info: bool = typer.Option(False, "--info"),
    warn: bool = typer.Option(False, "--warn"),
    logfile: Optional[Path] = typer.Option(None, "--logfile"),
    log_format: str = typer.Option("text", "--log-format"),
) -> None:
    """Schedule the next check of a host or service."""
    _configure_logging(
        debug=debug, info=info, warn=warn, logfile=logfile, log_format=log_format
    )
    _deliver(
        ScheduleCheck(
            host=host,
            check_time=at if at is not None else int(time.time()),
            service=service,
            forced=forced,
        ),
        cli_command="schedule-check",
        config=config,
        transport=transport,
    )


@app.command("render")
def render(
    name: str = typer.Argument(..., help="External command keyword"),
    arguments: Optional[list[str]] = typer.Argument(None),
    now: Optional[int] = typer.Option(None, "--now"),
) -> None:
    """Print the command file line for a command without sending it."""
    typer.echo(CommandFileRenderer().render(RawCommand(name, list(arguments or [])), now))


if __name__ == "__main__":
    app()
