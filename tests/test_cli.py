# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Tests for the command line interface."""

import json

import pytest

from codemap.cli import build_parser, main


def run(capsys, *argv):
    exit_code = main(list(argv))
    captured = capsys.readouterr()
    return exit_code, captured.out, captured.err


class TestCommands:
    """Tests for each subcommand's JSON output."""

    def test_callgraph(self, capsys, sample_project):
        code, out, _ = run(capsys, "--project", str(sample_project), "callgraph", "Controller.handle")
        assert code == 0
        payload = json.loads(out)
        assert payload["command"] == "callgraph"
        assert payload["target"] == "Controller.handle"
        assert payload["timestamp"].endswith("Z")
        assert payload["stats"]["totalClassesParsed"] == 4
        assert payload["stats"]["totalMethodsParsed"] == 7
        assert {node["id"] for node in payload["graph"]["nodes"]} == {
            "method:app.controller.Controller.handle(str)",
            "method:app.service.Service.process(str)",
        }
        assert [edge["type"] for edge in payload["graph"]["edges"]] == ["CALLS"]

    def test_callgraph_depth(self, capsys, sample_project):
        _, out, _ = run(
            capsys, "--project", str(sample_project), "callgraph", "ServiceImpl.process", "--depth", "0"
        )
        assert json.loads(out)["stats"]["graphNodes"] == 1

    def test_incoming_calls(self, capsys, sample_project):
        _, out, _ = run(capsys, "--project", str(sample_project), "incoming-calls", "Repository.fetch")
        names = {node["name"] for node in json.loads(out)["graph"]["nodes"]}
        assert names == {"fetch", "process"}

    def test_dependencies_and_dependents(self, capsys, sample_project):
        _, out, _ = run(capsys, "--project", str(sample_project), "dependencies", "ServiceImpl")
        assert json.loads(out)["stats"]["graphNodes"] == 3

        _, out, _ = run(capsys, "--project", str(sample_project), "dependents", "Repository")
        assert json.loads(out)["stats"]["graphNodes"] == 2

    def test_impact(self, capsys, sample_project):
        _, out, _ = run(capsys, "--project", str(sample_project), "impact", "Service")
        payload = json.loads(out)
        assert payload["command"] == "impact"
        assert {node["qualifiedName"] for node in payload["graph"]["nodes"]} == {
            "app.service.Service",
            "app.service_impl.ServiceImpl",
            "app.controller.Controller",
        }

    def test_fullgraph(self, capsys, sample_project):
        _, out, _ = run(capsys, "--project", str(sample_project), "fullgraph")
        payload = json.loads(out)
        assert payload["target"] == ""
        assert payload["stats"]["graphNodes"] == 11
        assert payload["stats"]["graphEdges"] == 15

    def test_circular_deps(self, capsys, cyclic_project):
        _, out, _ = run(capsys, "--project", str(cyclic_project), "circular-deps")
        payload = json.loads(out)
        assert payload["command"] == "circular-deps"
        assert payload["target"] == "all"
        assert payload["stats"]["graphNodes"] == 3

    def test_check(self, capsys, cyclic_project):
        _, out, _ = run(capsys, "--project", str(cyclic_project), "check")
        payload = json.loads(out)
        assert payload["command"] == "check"
        assert payload["summary"] == {"WARNING": 3}
        assert {v["ruleName"] for v in payload["violations"]} == {"circular-dependency"}

    def test_cache_stats(self, capsys, sample_project):
        run(capsys, "--project", str(sample_project), "fullgraph")
        _, out, _ = run(capsys, "--project", str(sample_project), "cache-stats")
        payload = json.loads(out)
        assert payload["command"] == "cache-stats"
        assert payload["stats"]["entries"] == 5
        assert payload["stats"]["hits"] == 5


class TestOptions:
    """Tests for global options."""

    def test_include_package(self, capsys, sample_project):
        _, out, _ = run(
            capsys, "--project", str(sample_project), "--include-package", "app.controller", "fullgraph"
        )
        nodes = json.loads(out)["graph"]["nodes"]
        assert nodes
        assert all(node["qualifiedName"].startswith("app.controller") for node in nodes)

    def test_exclude_package(self, capsys, sample_project):
        _, out, _ = run(
            capsys, "--project", str(sample_project), "--exclude-package", "app", "fullgraph"
        )
        assert json.loads(out)["graph"] == {"nodes": [], "edges": []}

    def test_compact(self, capsys, sample_project):
        _, out, _ = run(capsys, "--project", str(sample_project), "--compact", "fullgraph")
        assert out.count("\n") == 1

    def test_config_file(self, capsys, sample_project, tmp_path):
        config_path = tmp_path / "custom.yml"
        config_path.write_text("default_depth: 0\ncache_enabled: false\n")
        _, out, _ = run(
            capsys,
            "--project",
            str(sample_project),
            "--config",
            str(config_path),
            "callgraph",
            "ServiceImpl.process",
        )
        assert json.loads(out)["stats"]["graphNodes"] == 1
        assert not (sample_project / ".codemap_cache.json").exists()

    def test_project_config_picked_up(self, capsys, sample_project):
        (sample_project / ".codemap.yml").write_text("ignore_patterns:\n  - app/controller.py\n")
        _, out, _ = run(capsys, "--project", str(sample_project), "fullgraph")
        assert json.loads(out)["stats"]["totalClassesParsed"] == 3

    def test_log_dir(self, capsys, sample_project, tmp_path):
        log_dir = tmp_path / "logs"
        run(capsys, "--project", str(sample_project), "--log-level", "INFO", "--log-dir", str(log_dir), "fullgraph")
        assert list(log_dir.glob("codemap_*.log"))


class TestErrors:
    """Tests for failure handling."""

    def test_unknown_target_is_empty_success(self, capsys, sample_project):
        code, out, _ = run(capsys, "--project", str(sample_project), "impact", "NoSuchType")
        assert code == 0
        assert json.loads(out)["graph"] == {"nodes": [], "edges": []}

    def test_missing_project(self, capsys, tmp_path):
        code, out, err = run(capsys, "--project", str(tmp_path / "missing"), "fullgraph")
        assert code == 1
        assert out == ""
        assert err.startswith("Error: ")

    def test_missing_config_file(self, capsys, sample_project, tmp_path):
        code, out, err = run(
            capsys,
            "--project",
            str(sample_project),
            "--config",
            str(tmp_path / "absent.yml"),
            "fullgraph",
        )
        assert code == 1
        assert out == ""
        assert "Configuration file not found" in err

    def test_missing_command(self):
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args([])
        assert exc_info.value.code == 2

    def test_missing_target(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["impact"])
