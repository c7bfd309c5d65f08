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

from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from monitorcmd_py.errors import ConfigurationError


class ResourceConfig(BaseModel):
    model_config = ConfigDict(extra="allow")

    user: Optional[str] = None
    private_key: Optional[str] = None


class TransportConfig(BaseModel):
    name: str
    transport: Literal["remote"] = "remote"
    host: Optional[str] = None
    port: int = Field(default=22, ge=1, le=65535)
    user: Optional[str] = None
    private_key: Optional[str] = None
    resource: Optional[str] = None
    path: Optional[str] = None
    instance: Optional[str] = None

    @model_validator(mode="after")
    def validate_credentials(self) -> "TransportConfig":
        if self.resource and (self.user or self.private_key):
            raise ValueError(
                f"Transport '{self.name}' must not set 'user' or 'private_key' together with 'resource'"
            )
        return self


class SiteConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="MONITORCMD_")

    resources: dict[str, ResourceConfig] = Field(default_factory=dict)
    default_resource: Optional[str] = None
    transports: list[TransportConfig] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_unique_names(self) -> "SiteConfig":
        names = [transport.name for transport in self.transports]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"duplicate transport names: {', '.join(duplicates)}")
        return self

    @classmethod
    def load(cls, path: Path) -> "SiteConfig":
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        raw = yaml.safe_load(path.read_text())
        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ValueError("Config file must contain a YAML mapping at the top level.")
        return cls(**raw)

    def get_resource_config(self, name: Optional[str] = None) -> ResourceConfig:
        """Look up a resource by name; ``None`` selects ``default_resource``."""
        resource_name = name if name is not None else self.default_resource
        if resource_name is None:
            raise ConfigurationError("No resource given and no 'default_resource' configured", ("resource",))
        try:
            return self.resources[resource_name]
        except KeyError:
            raise ConfigurationError(f"Resource '{resource_name}' is not configured", ("resource",)) from None

    def get_transport(self, name: Optional[str] = None) -> TransportConfig:
        if not self.transports:
            raise ConfigurationError("No command transports configured", ("transports",))
        if name is None:
            return self.transports[0]
        for transport in self.transports:
            if transport.name == name:
                return transport
        raise ConfigurationError(f"Command transport '{name}' is not configured", ("transports",))


def default_config_path() -> Path:
    return Path("monitorcmd.yml")
