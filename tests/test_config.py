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

import pytest

pytest.importorskip("yaml")

from monitorcmd_py.config import SiteConfig, default_config_path
from monitorcmd_py.errors import ConfigurationError


def test_default_config_path():
    assert default_config_path().name == "monitorcmd.yml"


def test_site_config_load(tmp_path):
    config_path = tmp_path / "monitorcmd.yml"
    config_path.write_text(
        """
        default_resource: icinga-ssh
        resources:
          icinga-ssh:
            user: icinga
            private_key: /etc/monitorcmd/id_ed25519
            description: shared key
        transports:
          - name: master
            host: icinga-master.example.com
            port: 2222
            resource: icinga-ssh
            path: /var/run/icinga2/cmd/icinga2.cmd
            instance: icinga
        """
    )

    config = SiteConfig.load(config_path)

    assert config.default_resource == "icinga-ssh"
    assert config.resources["icinga-ssh"].user == "icinga"
    assert config.resources["icinga-ssh"].private_key == "/etc/monitorcmd/id_ed25519"
    assert len(config.transports) == 1
    transport = config.get_transport()
    assert transport.name == "master"
    assert transport.transport == "remote"
    assert transport.port == 2222
    assert transport.instance == "icinga"
    assert config.get_transport("master") is transport


def test_site_config_load_empty_file(tmp_path):
    config_path = tmp_path / "monitorcmd.yml"
    config_path.write_text("")

    config = SiteConfig.load(config_path)

    assert config.transports == []
    assert config.resources == {}


def test_site_config_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError, match="Config file not found"):
        SiteConfig.load(tmp_path / "missing.yml")


def test_site_config_rejects_non_mapping(tmp_path):
    config_path = tmp_path / "monitorcmd.yml"
    config_path.write_text("- just\n- a list\n")

    with pytest.raises(ValueError, match="YAML mapping"):
        SiteConfig.load(config_path)


def test_site_config_rejects_duplicate_transport_names(tmp_path):
    config_path = tmp_path / "monitorcmd.yml"
    config_path.write_text(
        """
        transports:
          - name: master
            host: a
            path: /cmd
          - name: master
            host: b
            path: /cmd
        """
    )

    with pytest.raises(ValueError, match="duplicate transport names: master"):
        SiteConfig.load(config_path)


def test_transport_rejects_resource_with_explicit_credentials(tmp_path):
    config_path = tmp_path / "monitorcmd.yml"
    config_path.write_text(
        """
        transports:
          - name: master
            host: a
            path: /cmd
            resource: icinga-ssh
            user: root
        """
    )

    with pytest.raises(ValueError, match="must not set 'user' or 'private_key' together with 'resource'"):
        SiteConfig.load(config_path)


def test_transport_rejects_invalid_port(tmp_path):
    config_path = tmp_path / "monitorcmd.yml"
    config_path.write_text(
        """
        transports:
          - name: master
            host: a
            port: 70000
        """
    )

    with pytest.raises(ValueError):
        SiteConfig.load(config_path)


def test_get_resource_config_errors():
    config = SiteConfig(resources={"icinga-ssh": {"user": "icinga"}})

    with pytest.raises(ConfigurationError, match="no 'default_resource' configured"):
        config.get_resource_config()
    with pytest.raises(ConfigurationError, match="Resource 'other' is not configured"):
        config.get_resource_config("other")
    assert config.get_resource_config("icinga-ssh").private_key is None


def test_get_transport_errors():
    config = SiteConfig()
    with pytest.raises(ConfigurationError, match="No command transports configured"):
        config.get_transport()

    config = SiteConfig(transports=[{"name": "master", "host": "a", "path": "/cmd"}])
    with pytest.raises(ConfigurationError, match="'satellite' is not configured"):
        config.get_transport("satellite")


def test_env_overrides_default_resource(monkeypatch):
    monkeypatch.setenv("MONITORCMD_DEFAULT_RESOURCE", "from-env")

    config = SiteConfig(resources={"from-env": {"user": "icinga", "private_key": "/k"}})

    assert config.get_resource_config().user == "icinga"
