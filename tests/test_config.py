# tests/test_config.py
import argparse
import logging

import pytest

from retrylint.cli import cli_parser
from retrylint.config import DEFAULT_CONFIG_NAME, ENTRY_POINTS, Config
from retrylint.errors import ConfigError


def test_defaults_match_consul_harness():
    cfg = Config()
    assert cfg.entry_points == ENTRY_POINTS
    assert cfg.outer_handle == "t"
    assert set(cfg.failers) == {"Error", "Errorf", "Fail", "FailNow", "Fatal", "Fatalf"}
    assert cfg.package_names == {
        "github.com/hashicorp/consul/sdk/testutil/retry": "retry",
        "testing": "testing",
    }


def test_instances_do_not_share_mutable_defaults():
    a, b = Config(), Config()
    a.failers.append("Log")
    a.entry_points["Eventually"] = 1
    assert "Log" not in b.failers
    assert "Eventually" not in b.entry_points


def test_load_yaml(tmp_path):
    p = tmp_path / "cfg.yaml"
    p.write_text(
        "failers: [Fatal]\nentry_points:\n  Run: 1\n  Eventually: 2\nstrict: true\n"
    )
    cfg = Config()
    cfg.load_yaml(p)
    assert cfg.failers == ["Fatal"]
    assert cfg.entry_points == {"Run": 1, "Eventually": 2}
    assert cfg.strict is True


def test_missing_yaml_is_ignored(tmp_path):
    cfg = Config()
    cfg.load_yaml(tmp_path / "nope.yaml")
    assert cfg.output == "text"


def test_unknown_key_warns(tmp_path, caplog):
    p = tmp_path / "cfg.yaml"
    p.write_text("colour: blue\n")
    with caplog.at_level(logging.WARNING, logger="retrylint"):
        Config().load_yaml(p)
    assert "unknown config key 'colour'" in caplog.text


@pytest.mark.parametrize(
    "body",
    [
        "entry_points: [Run]\n",
        "entry_points: {Run: -1}\n",
        "jobs: 0\n",
        "output: html\n",
        "failers: 3\n",
        "- just\n- a list\n",
        "failers: [unclosed\n",
    ],
)
def test_invalid_yaml_values(tmp_path, body):
    p = tmp_path / "cfg.yaml"
    p.write_text(body)
    with pytest.raises(ConfigError):
        Config().load_yaml(p)


def test_from_args_layering(tmp_path):
    (tmp_path / DEFAULT_CONFIG_NAME).write_text("failers: [Fatal, Error]\njobs: 4\n")
    extra = tmp_path / "extra.yaml"
    extra.write_text("jobs: 2\noutput: json\n")
    ns = cli_parser().parse_args(
        [
            "--root",
            str(tmp_path),
            "--config",
            str(extra),
            "--output",
            "markdown",
            "--checks",
            "RT001, RT002",
        ]
    )
    cfg = Config.from_args(ns)
    assert cfg.failers == ["Fatal", "Error"]
    assert cfg.jobs == 2
    assert cfg.output == "markdown"
    assert cfg.checks == ["RT001", "RT002"]
    assert cfg.root == str(tmp_path)


def test_from_args_missing_config_file(tmp_path):
    ns = argparse.Namespace(root=str(tmp_path), config=tmp_path / "gone.yaml")
    with pytest.raises(ConfigError):
        Config.from_args(ns)


def test_zero_jobs_flag_is_rejected(tmp_path):
    ns = cli_parser().parse_args(["--root", str(tmp_path), "--jobs", "0"])
    with pytest.raises(ConfigError, match="jobs must be a positive integer"):
        Config.from_args(ns)
