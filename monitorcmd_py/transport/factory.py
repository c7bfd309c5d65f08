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

import logging
from typing import Optional

from monitorcmd_py.config import SiteConfig, TransportConfig
from monitorcmd_py.transport.remote import RemoteCommandFile


def build_transport(
    transport: TransportConfig,
    site: SiteConfig,
    logger: Optional[logging.Logger] = None,
) -> RemoteCommandFile:
    channel = RemoteCommandFile(
        host=transport.host,
        port=transport.port,
        path=transport.path,
        instance=transport.instance,
        logger=logger,
    )
    if transport.resource is not None:
        channel.set_resource(site.get_resource_config, transport.resource)
    else:
        channel.user = transport.user
        channel.private_key = transport.private_key
    return channel
