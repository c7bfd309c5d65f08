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

import re
from dataclasses import dataclass, field
from typing import Optional


class Command:
    """Base for commands written to the monitoring daemon's command file."""

    @property
    def name(self) -> str:
        raise NotImplementedError

    def arguments(self) -> list[str]:
        raise NotImplementedError


_KEYWORD = re.compile(r"[A-Za-z0-9_]+")


def _flag(value: bool) -> str:
    return "1" if value else "0"


def _require(value: str, label: str) -> None:
    if not value:
        raise ValueError(f"'{label}' must not be empty")


def _object_args(host: str, service: Optional[str]) -> list[str]:
    return [host] if service is None else [host, service]


def _object_kind(service: Optional[str]) -> str:
    return "HOST" if service is None else "SVC"


@dataclass
class RawCommand(Command):
    keyword: str
    args: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        _require(self.keyword, "keyword")
        if not _KEYWORD.fullmatch(self.keyword):
            raise ValueError(f"Command keyword may only contain letters, digits and '_': {self.keyword!r}")

    @property
    def name(self) -> str:
        return self.keyword.upper()

    def arguments(self) -> list[str]:
        return [str(arg) for arg in self.args]


@dataclass
class ProcessCheckResult(Command):
    host: str
    status: int
    output: str
    service: Optional[str] = None
    performance_data: Optional[str] = None

    def __post_init__(self) -> None:
        _require(self.host, "host")
        limit = 2 if self.service is None else 3
        if not 0 <= self.status <= limit:
            raise ValueError(f"Check result status must be between 0 and {limit}, got {self.status}")

    @property
    def name(self) -> str:
        return "PROCESS_HOST_CHECK_RESULT" if self.service is None else "PROCESS_SERVICE_CHECK_RESULT"

    def arguments(self) -> list[str]:
        output = self.output
        if self.performance_data:
            output = f"{output}|{self.performance_data}"
        return [*_object_args(self.host, self.service), str(self.status), output]


@dataclass
class AcknowledgeProblem(Command):
    host: str
    author: str
    comment: str
    service: Optional[str] = None
    sticky: bool = False
    notify: bool = False
    persistent: bool = False
    expire_time: Optional[int] = None

    def __post_init__(self) -> None:
        _require(self.host, "host")
        _require(self.author, "author")

    @property
    def name(self) -> str:
        suffix = "_EXPIRE" if self.expire_time is not None else ""
        return f"ACKNOWLEDGE_{_object_kind(self.service)}_PROBLEM{suffix}"

    def arguments(self) -> list[str]:
        args = [
            *_object_args(self.host, self.service),
            "2" if self.sticky else "0",
            _flag(self.notify),
            _flag(self.persistent),
        ]
        if self.expire_time is not None:
            args.append(str(self.expire_time))
        args.extend([self.author, self.comment])
        return args


@dataclass
class AddComment(Command):
    host: str
    author: str
    comment: str
    service: Optional[str] = None
    persistent: bool = False

    def __post_init__(self) -> None:
        _require(self.host, "host")
        _require(self.author, "author")

    @property
    def name(self) -> str:
        return f"ADD_{_object_kind(self.service)}_COMMENT"

    def arguments(self) -> list[str]:
        return [*_object_args(self.host, self.service), _flag(self.persistent), self.author, self.comment]


@dataclass
class ScheduleCheck(Command):
    host: str
    check_time: int
    service: Optional[str] = None
    forced: bool = False

    def __post_init__(self) -> None:
        _require(self.host, "host")

    @property
    def name(self) -> str:
        forced = "FORCED_" if self.forced else ""
        return f"SCHEDULE_{forced}{_object_kind(self.service)}_CHECK"

    def arguments(self) -> list[str]:
        return [*_object_args(self.host, self.service), str(self.check_time)]


@dataclass
class ScheduleDowntime(Command):
    host: str
    start: int
    end: int
    author: str
    comment: str
    service: Optional[str] = None
    fixed: bool = True
    trigger_id: int = 0
    duration: int = 0

    def __post_init__(self) -> None:
        _require(self.host, "host")
        _require(self.author, "author")
        if self.end <= self.start:
            raise ValueError(f"Downtime end ({self.end}) must be after its start ({self.start})")
        if not self.fixed and self.duration <= 0:
            raise ValueError("Flexible downtimes require a positive 'duration'")

    @property
    def name(self) -> str:
        return f"SCHEDULE_{_object_kind(self.service)}_DOWNTIME"

    def arguments(self) -> list[str]:
        return [
            *_object_args(self.host, self.service),
            str(self.start),
            str(self.end),
            _flag(self.fixed),
            str(self.trigger_id),
            str(self.duration),
            self.author,
            self.comment,
        ]
