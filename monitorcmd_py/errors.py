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


class ConfigurationError(ValueError):
    def __init__(self, message: str, fields: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.fields = fields


class CommandTransportError(RuntimeError):
    """Failure of the SSH pipe; ``code`` is one of TRANSPORT_SPAWN, TRANSPORT_DEAD,
    TRANSPORT_WRITE or TRANSPORT_ERROR."""

    def __init__(self, message: str, code: str = "TRANSPORT_ERROR") -> None:
        super().__init__(message)
        self.code = code
