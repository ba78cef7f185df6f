# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Tests for the flowctl entry point and ProcessContext."""

import pytest
import yaml

from flowctl.cli.describe import main
from flowctl.core.context import ProcessContext
from flowctl.core.errors import ConsistencyError


class TestMain:
    def test_prints_configuration(self, fake_dns, capsys):
        exit_code = main(["-p", "1", "-n", "2", "--local", "--myappflag", "5"])

        document = yaml.safe_load(capsys.readouterr().out)
        assert exit_code == 0
        assert document["configuration"]["process_id"] == 1
        assert document["configuration"]["endpoints"] == ["127.0.0.1:2101", "127.0.0.1:2102"]
        assert document["remaining_args"] == ["--myappflag", "5"]

    def test_exits_nonzero_on_error(self, fake_dns):
        with pytest.raises(SystemExit) as exc_info:
            main(["-n", "2"])

        assert exc_info.value.code == 1

    def test_missing_hosts_file_exits(self, fake_dns, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            main(["-n", "2", "-h", f"@{tmp_path / 'missingfile'}"])

        assert exc_info.value.code != 0

    def test_usage_error_prints_usage(self, fake_dns, capsys):
        with pytest.raises(SystemExit):
            main(["-h", "node01"])

        assert "flowctl options:" in capsys.readouterr().err

    def test_settings_file_applied(self, fake_dns, tmp_path, capsys):
        (tmp_path / "flowctl.yaml").write_text("defaults:\n  netstats_interface: eth0\n")

        main([])

        document = yaml.safe_load(capsys.readouterr().out)
        assert document["configuration"]["netstats_interface_name"] == "eth0"

    def test_undecodable_settings_file_exits(self, fake_dns, tmp_path, caplog):
        (tmp_path / "flowctl.yaml").write_bytes(b"defaults:\n  netstats_interface: \xff\xfe\n")

        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 1
        assert "cannot read settings file" in caplog.text


class TestProcessContext:
    def test_from_args(self, fake_dns):
        context = ProcessContext.from_args(["-t", "3", "app.py"])

        try:
            assert context.configuration.worker_count == 3
            assert context.worker_group.count == 3
            assert context.app_args == ("app.py",)
        finally:
            context.close()

    def test_without_worker_group(self, fake_dns):
        context = ProcessContext.from_args([], with_worker_group=False)

        assert context.worker_group is None
        context.close()

    def test_invalid_args_raise(self, fake_dns):
        with pytest.raises(ConsistencyError):
            ProcessContext.from_args(["-p", "0"])
