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
import time
from typing import Optional

from monitorcmd_py.command.model import Command

_NEWLINES = re.compile(r"\r\n|\r|\n")
_KEYWORD = re.compile(r"[A-Z0-9_]+")


def escape_argument(value: str) -> str:
    # The command file is line oriented; a raw newline would start a new command.
    return _NEWLINES.sub(r"\\n", value)


class CommandFileRenderer:
    """Render commands into the daemon's external command file format.

    A rendered line looks like ``[1700000000] SCHEDULE_HOST_CHECK;web1;1700000060``
    and never contains a newline.
    """

    def render(self, command: Command, now: Optional[int] = None) -> str:
        if now is None:
            now = int(time.time())
        if not _KEYWORD.fullmatch(command.name):
            raise ValueError(f"Invalid command keyword: {command.name!r}")
        parts = [command.name, *(escape_argument(arg) for arg in command.arguments())]
        return f"[{int(now)}] {';'.join(parts)}"
