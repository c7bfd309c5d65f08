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

"""Relay external commands to a remote monitoring daemon through ``ssh``.

Key-based SSH login must be possible for the configured user on the remote
host. Every command is appended as one line to the daemon's command file by
a single long-lived ``ssh <host> "cat > <path>"`` process.
"""

from __future__ import annotations

import logging
import os
import re
import shlex
import subprocess
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, NoReturn, Optional, Union

from monitorcmd_py.command.model import Command
from monitorcmd_py.command.renderer import CommandFileRenderer
from monitorcmd_py.errors import CommandTransportError, ConfigurationError

_DOUBLE_QUOTE_SPECIALS = re.compile(r'([\\"$`])')


class ChannelState(str, Enum):
    UNCONFIGURED = "unconfigured"
    CONFIGURED = "configured"
    SPAWNING = "spawning"
    ALIVE = "alive"
    FAILED = "failed"
    CLOSED = "closed"


@dataclass(frozen=True)
class ProcessStatus:
    command: str
    pid: int
    running: bool
    signaled: bool
    exitcode: int
    termsig: int


def spawn_process(command_line: str) -> subprocess.Popen:
    # bufsize=0 so a write reports what the pipe actually accepted
    return subprocess.Popen(
        command_line,
        shell=True,
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        bufsize=0,
    )


def _double_quoted(value: str) -> str:
    return '"' + _DOUBLE_QUOTE_SPECIALS.sub(r"\\\1", value) + '"'


def _port(value: Any) -> int:
    try:
        port = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Invalid SSH port: {value!r}", ("port",)) from None
    if not 1 <= port <= 65535:
        raise ConfigurationError(f"SSH port must be between 1 and 65535, got {port}", ("port",))
    return port


class _Setting:
    """Channel setting that can only change until the SSH process is started."""

    def __init__(self, convert: Callable[[Any], Any], optional: bool = True) -> None:
        self.convert = convert
        self.optional = optional

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name
        self.attr = f"_{name}"

    def __get__(self, instance: Optional["RemoteCommandFile"], owner: Optional[type] = None) -> Any:
        if instance is None:
            return self
        return getattr(instance, self.attr)

    def __set__(self, instance: "RemoteCommandFile", value: Any) -> None:
        instance._check_mutable(self.name)
        setattr(instance, self.attr, None if value is None and self.optional else self.convert(value))


class RemoteCommandFile:
    """A remote command file, written to over a shell-spawned SSH pipe.

    The SSH process is started on first use and reused for every following
    ``send``. Once it is observed dead the channel stays failed; build a new
    channel to retry. Use the channel as a context manager (or call
    :meth:`close`) to release the pipes and reap the process.

    Writes have no timeout: a hung ``ssh`` blocks the caller.
    """

    TRANSPORT = "remote"

    host = _Setting(str)
    port = _Setting(_port, optional=False)
    user = _Setting(str)
    private_key = _Setting(str)
    path = _Setting(str)
    instance = _Setting(str)

    def __init__(
        self,
        host: Optional[str] = None,
        port: int = 22,
        user: Optional[str] = None,
        private_key: Optional[str] = None,
        path: Optional[str] = None,
        instance: Optional[str] = None,
        renderer: Optional[CommandFileRenderer] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._process: Optional[subprocess.Popen] = None
        self._command_line = ""
        self._spawning = False
        self._failed = False
        self._closed = False
        self._lock = threading.Lock()
        self.host = host
        self.port = port
        self.user = user
        self.private_key = private_key
        self.path = path
        self.instance = instance
        self.renderer = renderer or CommandFileRenderer()
        self.logger = logger or logging.getLogger(__name__)

    def __enter__(self) -> "RemoteCommandFile":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()

    @property
    def state(self) -> ChannelState:
        if self._closed:
            return ChannelState.CLOSED
        if self._failed:
            return ChannelState.FAILED
        if self._process is not None:
            return ChannelState.ALIVE
        if self._spawning:
            return ChannelState.SPAWNING
        if self._host is not None and self._path is not None:
            return ChannelState.CONFIGURED
        return ChannelState.UNCONFIGURED

    def set_resource(self, lookup: Callable[[Optional[str]], Any], resource: Optional[str] = None) -> None:
        """Take user and private key from a resource record.

        ``lookup`` maps a resource name (``None`` for the default resource) to
        a record with ``user`` and ``private_key`` attributes. Nothing is
        applied unless both are present.
        """
        config = lookup(resource)
        user = getattr(config, "user", None)
        private_key = getattr(config, "private_key", None)
        missing = tuple(name for name, value in (("user", user), ("private_key", private_key)) if value is None)
        if missing:
            raise ConfigurationError(
                f"Can't send external command. Resource is missing: {', '.join(missing)}",
                missing,
            )
        self.user = user
        self.private_key = private_key

    def ssh_command(self) -> str:
        self._check_configured()
        parts = ["exec ssh -o BatchMode=yes", f"-p {self.port}"]
        if self.user is not None:
            parts.append(f"-l {shlex.quote(self.user)}")
        if self.private_key is not None:
            # TODO: StrictHostKeyChecking=no is a compatibility shim and must be removed.
            parts.append(f"-o StrictHostKeyChecking=no -i {shlex.quote(self.private_key)}")
        parts.append(shlex.quote(self.host))
        # Quoted once for the remote shell and once for the local one.
        parts.append(_double_quoted(f"cat > {shlex.quote(self.path)}"))
        return " ".join(parts)

    def ensure_started(self) -> subprocess.Popen:
        if self._closed:
            raise CommandTransportError("Can't send external command, the channel is closed")
        if self._process is not None:
            return self._process
        if self._failed:
            raise CommandTransportError("Can't send external command, failed to fork SSH", "TRANSPORT_SPAWN")
        command_line = self.ssh_command()
        self._spawning = True
        try:
            process = spawn_process(command_line)
        except OSError as exc:
            self._failed = True
            raise CommandTransportError(
                f"Can't send external command, failed to fork SSH: {exc}", "TRANSPORT_SPAWN"
            ) from exc
        finally:
            self._spawning = False
        if process is None or process.stdin is None or process.stderr is None:
            self._failed = True
            raise CommandTransportError("Can't send external command, failed to fork SSH", "TRANSPORT_SPAWN")
        self._process = process
        self._command_line = command_line
        self.logger.debug("Started SSH process %s: %s", process.pid, command_line)
        return process

    def status(self) -> ProcessStatus:
        process = self.ensure_started()
        returncode = process.poll()
        running = returncode is None
        signaled = not running and returncode < 0
        return ProcessStatus(
            command=self._command_line,
            pid=process.pid,
            running=running,
            signaled=signaled,
            exitcode=-1 if running or signaled else returncode,
            termsig=-returncode if signaled else 0,
        )

    def is_alive(self) -> bool:
        return self.status().running

    def send(self, command: Union[Command, str], now: Optional[int] = None) -> None:
        """Append one command to the remote command file.

        A :class:`Command` is rendered first; a string is taken as an already
        rendered line.

        :raises ConfigurationError: path or host is not set.
        :raises CommandTransportError: the SSH process is gone or the write failed.
        """
        self._check_configured()
        text = command if isinstance(command, str) else self.renderer.render(command, now)
        self.logger.debug(
            'Sending external command "%s" to the remote command file "%s:%u%s"',
            text,
            self.host,
            self.port,
            self.path,
        )
        self.send_command_string(text)

    def send_command_string(self, text: str) -> None:
        data = f"{text}\n".encode("utf-8")
        with self._lock:
            process = self.ensure_started()
            if self._failed or not self.is_alive():
                self._fail()
            try:
                written = process.stdin.write(data)
            except OSError as exc:
                self._fail("Cannot write to remote command pipe", "TRANSPORT_WRITE", exc)
            if written != len(data):
                self._fail("Failed to write the whole command to remote command pipe", "TRANSPORT_WRITE")

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            process = self._process
            if process is None:
                return
            for stream in (process.stdin, process.stdout, process.stderr):
                if stream is not None:
                    stream.close()
            returncode = process.wait()
            self.logger.debug("SSH process %s exited with %s", process.pid, returncode)

    def _check_mutable(self, name: str) -> None:
        if self._process is not None or self._failed or self._closed:
            raise ConfigurationError(f"Can't change '{name}' once the SSH process has been started", (name,))

    def _check_configured(self) -> None:
        if self._path is None:
            raise ConfigurationError(
                "Can't send external command. Path to the remote command file is missing", ("path",)
            )
        if self._host is None:
            raise ConfigurationError("Can't send external command. Remote host is missing", ("host",))
        if self._host.startswith("-"):
            raise ConfigurationError(f"Remote host must not start with '-': {self._host!r}", ("host",))

    def _fail(
        self,
        message: str = "Can't send external command",
        code: str = "TRANSPORT_DEAD",
        cause: Optional[BaseException] = None,
    ) -> NoReturn:
        # stderr was drained by the first failure
        stderr = "" if self._failed else self._read_stderr()
        self._failed = True
        status = self.status()
        self.logger.debug("SSH process failed: %s %r", message, status)
        raise CommandTransportError(f"{message}: {stderr}{status!r}", code) from cause

    def _read_stderr(self) -> str:
        process = self._process
        if process is None or process.stderr is None or process.stderr.closed:
            return ""
        if process.poll() is None:
            # Still running: take what is buffered without waiting for EOF.
            os.set_blocking(process.stderr.fileno(), False)
        data = process.stderr.read()
        return (data or b"").decode("utf-8", errors="replace")
