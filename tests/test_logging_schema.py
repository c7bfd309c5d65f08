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

import importlib
import json
import logging
import sys
from types import ModuleType

import pytest


def _load_cli_with_fake_typer():
    fake_typer = ModuleType("typer")

    class FakeTyperApp:
        def command(self, *_args, **_kwargs):
            def decorator(func):
                return func

            return decorator

    def fake_option(default=None, *_args, **_kwargs):
        return default

    fake_typer.Typer = lambda **_kwargs: FakeTyperApp()
    fake_typer.Option = fake_option
    fake_typer.Argument = fake_option
    fake_typer.echo = print
    sys.modules["typer"] = fake_typer
    sys.modules.pop("monitorcmd_py.cli", None)
    return importlib.import_module("monitorcmd_py.cli")


@pytest.fixture(autouse=True)
def _restore_typer():
    saved = sys.modules.get("typer")
    yield
    sys.modules.pop("monitorcmd_py.cli", None)
    if saved is None:
        sys.modules.pop("typer", None)
    else:
        sys.modules["typer"] = saved


def test_json_log_formatter_has_fixed_schema():
    cli = _load_cli_with_fake_typer()

    formatter = cli.JsonLogFormatter()
    record = logging.LogRecord(
        name="monitorcmd_py.cli",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="test message",
        args=(),
        exc_info=None,
    )
    record.event = "send_command"
    record.command = "send"
    record.target = "master"
    record.status = "success"
    record.elapsed_ms = 12
    record.error_code = None
    record.external_command = "SCHEDULE_HOST_CHECK"
    payload = json.loads(formatter.format(record))

    for key in (
        "timestamp",
        "level",
        "logger",
        "message",
        "event",
        "command",
        "target",
        "status",
        "elapsed_ms",
        "error_code",
    ):
        assert key in payload
    assert payload["external_command"] == "SCHEDULE_HOST_CHECK"
    assert "instance" not in payload


def test_error_classification_codes():
    cli = _load_cli_with_fake_typer()

    for code in ("TRANSPORT_SPAWN", "TRANSPORT_DEAD", "TRANSPORT_WRITE"):
        assert cli._classify_error(cli.CommandTransportError("failed", code)) == code
    # The stderr dump must not influence the code.
    noisy = cli.CommandTransportError("Can't send external command: fork failed, cannot write", "TRANSPORT_DEAD")
    assert cli._classify_error(noisy) == "TRANSPORT_DEAD"
    closed = cli.CommandTransportError("Can't send external command, the channel is closed")
    assert cli._classify_error(closed) == "TRANSPORT_ERROR"

    assert cli._classify_error(cli.ConfigurationError("Remote host is missing")) == "CONFIG_ERROR"
    assert cli._classify_error(ValueError("bad config")) == "CONFIG_ERROR"
    assert cli._classify_error(RuntimeError("boom")) == "UNEXPECTED_ERROR"


def test_configure_logging_replaces_its_own_handler(tmp_path):
    cli = _load_cli_with_fake_typer()
    root = logging.getLogger()
    foreign = logging.NullHandler()
    root.addHandler(foreign)
    saved_level = root.level
    try:
        cli._configure_logging(debug=False, info=False, warn=True, logfile=tmp_path / "a.log", log_format="json")
        cli._configure_logging(debug=True, info=True, warn=False, logfile=tmp_path / "b.log", log_format="text")

        own = [h for h in root.handlers if getattr(h, cli._MONITORCMD_HANDLER_ATTR, False)]
        assert len(own) == 1
        assert own[0].baseFilename == str(tmp_path / "b.log")
        assert not isinstance(own[0].formatter, cli.JsonLogFormatter)
        assert foreign in root.handlers
        assert root.level == logging.DEBUG
    finally:
        for handler in [h for h in root.handlers if getattr(h, cli._MONITORCMD_HANDLER_ATTR, False)]:
            root.removeHandler(handler)
            handler.close()
        root.removeHandler(foreign)
        root.setLevel(saved_level)
