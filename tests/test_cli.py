"""Tests for wsresolve CLI."""

from __future__ import annotations

import argparse
import json
import os
from pathlib import Path
from unittest import mock

import pytest

from wsresolve.cli import (
    cmd_check,
    cmd_graph,
    cmd_order,
    cmd_resolve,
    cmd_tree,
    main,
    _collect_edges,
    _config_from_args,
    _generate_dot,
    _generate_mermaid,
    _mermaid_id,
    _check_graphviz,
    _print_tree_text,
    _render_dot,
)
from wsresolve.core.graph import build_dependency_graph
from wsresolve.core.parser import WorkspacePackage
from wsresolve.core.tree import DependencyNode

_CLEAN_ENV = {
    "WSRESOLVE_LINK_ROOT": "",
    "WSRESOLVE_MANIFEST": "",
    "WSRESOLVE_CONFIG": "",
    "WSRESOLVE_SCOPE": "",
    "WSRESOLVE_STRICT_VERSIONS": "",
}

DEFINITION = {
    "core": {"name": "@acme/core", "version": "1.0.0"},
    "api": {
        "name": "@acme/api",
        "version": "1.0.0",
        "dependencies": {"@acme/core": "workspace:*"},
    },
    "web-app": {
        "name": "@acme/web-app",
        "version": "1.0.0",
        "dependencies": {"@acme/api": "workspace:*", "react": "^18.0.0"},
    },
}


def _workspace(tmp_path: Path, definition: dict | None = None) -> Path:
    root = tmp_path / "ws"
    root.mkdir()
    if definition is None:
        definition = DEFINITION
    (root / "workspace-config.json").write_text(json.dumps({"workspaces": definition}))
    return root


def _args(root: Path, **kwargs) -> argparse.Namespace:
    base = {
        "root": str(root),
        "config": None,
        "scope": None,
        "verbose": False,
        "quiet": True,
        "json": False,
    }
    base.update(kwargs)
    return argparse.Namespace(**base)


def _graph():
    return build_dependency_graph(
        [
            WorkspacePackage(
                name=name,
                version="1.0.0",
                entry_point="",
                source_path=Path("/ws") / name,
                build_output_path=Path("/ws/dist") / name,
                dependencies=deps,
            )
            for name, deps in (
                ("@acme/core", {}),
                ("@acme/api", {"@acme/core": "workspace:*", "@acme/ghost": "workspace:*"}),
            )
        ]
    )


class TestPrintTreeText:
    """Tests for _print_tree_text helper."""

    def test_node_with_children(self, capsys) -> None:
        child = DependencyNode(name="core", version="1.0.0", status="built", path="/core")
        parent = DependencyNode(
            name="api", version="1.0.0", status="built", path="/api", children=[child]
        )
        _print_tree_text(parent)
        out = capsys.readouterr().out
        assert "api (1.0.0)" in out
        assert "├── core (1.0.0)" in out
        assert "[built]" not in out

    def test_markers_shown(self, capsys) -> None:
        parent = DependencyNode(
            name="api",
            version="1.0.0",
            status="built",
            path="/api",
            children=[
                DependencyNode(name="ghost", version="", status="(not found)", path=""),
                DependencyNode(name="api", version="", status="(cycle)", path=""),
            ],
        )
        _print_tree_text(parent)
        out = capsys.readouterr().out
        assert "ghost [(not found)]" in out
        assert "api [(cycle)]" in out


class TestConfigFromArgs:
    """Tests for _config_from_args."""

    def test_flags_override_env(self, tmp_path: Path) -> None:
        env = {**_CLEAN_ENV, "WSRESOLVE_MANIFEST": "env-manifest.json"}
        with mock.patch.dict(os.environ, env, clear=False):
            config = _config_from_args(_args(tmp_path, manifest="flag.json", lenient_versions=True))
        assert config.manifest_path == tmp_path.resolve() / "flag.json"
        assert config.strict_versions is False

    def test_env_used_without_flags(self, tmp_path: Path) -> None:
        env = {**_CLEAN_ENV, "WSRESOLVE_MANIFEST": "env-manifest.json"}
        with mock.patch.dict(os.environ, env, clear=False):
            config = _config_from_args(_args(tmp_path))
        assert config.manifest_path == tmp_path.resolve() / "env-manifest.json"
        assert config.strict_versions is True
        assert config.dry_run is False


class TestCmdResolve:
    """Tests for cmd_resolve."""

    def _resolve_args(self, root: Path, **kwargs) -> argparse.Namespace:
        base = {"link_root": None, "manifest": None, "lenient_versions": False, "dry_run": False}
        base.update(kwargs)
        return _args(root, **base)

    def test_success(self, tmp_path: Path, capsys) -> None:
        root = _workspace(tmp_path)
        with mock.patch.dict(os.environ, _CLEAN_ENV, clear=False):
            result = cmd_resolve(self._resolve_args(root))
        out = capsys.readouterr().out
        assert result == 0
        assert "Resolved 3 workspace package(s)" in out
        assert "@acme/core -> @acme/api -> @acme/web-app" in out
        assert (root / "workspace-resolution-manifest.json").exists()

    def test_json(self, tmp_path: Path, capsys) -> None:
        root = _workspace(tmp_path)
        with mock.patch.dict(os.environ, _CLEAN_ENV, clear=False):
            result = cmd_resolve(self._resolve_args(root, json=True, dry_run=True))
        data = json.loads(capsys.readouterr().out)
        assert result == 0
        assert data["success"] is True
        assert data["manifestPath"] is None

    def test_failure(self, tmp_path: Path, capsys) -> None:
        root = _workspace(
            tmp_path,
            {
                "a": {"name": "a", "version": "1.0.0"},
                "b": {"name": "b", "version": "2.0.0"},
            },
        )
        with mock.patch.dict(os.environ, _CLEAN_ENV, clear=False):
            result = cmd_resolve(self._resolve_args(root))
        err = capsys.readouterr().err
        assert result == 1
        assert "error: Version mismatch" in err
        assert "Dependency resolution failed." in err
        assert not (root / "workspace-resolution-manifest.json").exists()

    def test_lenient(self, tmp_path: Path, capsys) -> None:
        root = _workspace(
            tmp_path,
            {
                "a": {"name": "a", "version": "1.0.0"},
                "b": {"name": "b", "version": "2.0.0"},
            },
        )
        with mock.patch.dict(os.environ, _CLEAN_ENV, clear=False):
            result = cmd_resolve(self._resolve_args(root, lenient_versions=True, dry_run=True))
        captured = capsys.readouterr()
        assert result == 0
        assert "warning: Version mismatch" in captured.err
        assert "dry run" in captured.out


class TestCmdCheck:
    """Tests for cmd_check."""

    def test_valid(self, tmp_path: Path, capsys) -> None:
        root = _workspace(tmp_path)
        with mock.patch.dict(os.environ, _CLEAN_ENV, clear=False):
            result = cmd_check(_args(root, lenient_versions=False))
        assert result == 0
        assert "Workspace is valid." in capsys.readouterr().out
        assert not (root / "workspace-resolution-manifest.json").exists()

    def test_problems(self, tmp_path: Path, capsys) -> None:
        root = _workspace(
            tmp_path,
            {
                "a": {"name": "a", "version": "1.0.0", "dependencies": {"b": "workspace:*"}},
                "b": {"name": "b", "version": "1.0.0", "dependencies": {"a": "workspace:*", "c": "workspace:*"}},
            },
        )
        with mock.patch.dict(os.environ, _CLEAN_ENV, clear=False):
            result = cmd_check(_args(root, lenient_versions=False))
        err = capsys.readouterr().err
        assert result == 1
        assert "error: b depends on unknown package c" in err
        assert "error: Circular dependency: a -> b -> a" in err
        assert "Found 2 problem(s)." in err

    def test_json(self, tmp_path: Path, capsys) -> None:
        root = _workspace(tmp_path)
        with mock.patch.dict(os.environ, _CLEAN_ENV, clear=False):
            result = cmd_check(_args(root, lenient_versions=False, json=True))
        data = json.loads(capsys.readouterr().out)
        assert result == 0
        assert data["valid"] is True

    def test_missing_config_json(self, tmp_path: Path, capsys) -> None:
        with mock.patch.dict(os.environ, _CLEAN_ENV, clear=False):
            result = cmd_check(_args(tmp_path, lenient_versions=False, json=True))
        data = json.loads(capsys.readouterr().out)
        assert result == 1
        assert data["valid"] is False
        assert "not found" in data["errors"][0]


class TestCmdOrder:
    """Tests for cmd_order."""

    def test_flat(self, tmp_path: Path, capsys) -> None:
        root = _workspace(tmp_path)
        with mock.patch.dict(os.environ, _CLEAN_ENV, clear=False):
            result = cmd_order(_args(root, levels=False))
        out = capsys.readouterr().out
        assert result == 0
        assert out.splitlines() == ["  1. @acme/core", "  2. @acme/api", "  3. @acme/web-app"]

    def test_levels_json(self, tmp_path: Path, capsys) -> None:
        root = _workspace(tmp_path)
        with mock.patch.dict(os.environ, _CLEAN_ENV, clear=False):
            result = cmd_order(_args(root, levels=True, json=True))
        assert result == 0
        assert json.loads(capsys.readouterr().out) == [["@acme/core"], ["@acme/api"], ["@acme/web-app"]]

    def test_cycle(self, tmp_path: Path, capsys) -> None:
        root = _workspace(
            tmp_path,
            {
                "a": {"name": "a", "version": "1.0.0", "dependencies": {"b": "workspace:*"}},
                "b": {"name": "b", "version": "1.0.0", "dependencies": {"a": "workspace:*"}},
            },
        )
        with mock.patch.dict(os.environ, _CLEAN_ENV, clear=False):
            result = cmd_order(_args(root, levels=False))
        assert result == 1
        assert "Circular dependency detected" in capsys.readouterr().err

    def test_missing_config(self, tmp_path: Path, capsys) -> None:
        with mock.patch.dict(os.environ, _CLEAN_ENV, clear=False):
            result = cmd_order(_args(tmp_path, levels=False))
        assert result == 1
        assert "Error:" in capsys.readouterr().err


class TestCmdTree:
    """Tests for cmd_tree."""

    def test_text(self, tmp_path: Path, capsys) -> None:
        root = _workspace(tmp_path)
        with mock.patch.dict(os.environ, _CLEAN_ENV, clear=False):
            result = cmd_tree(_args(root, depth=None))
        out = capsys.readouterr().out
        assert result == 0
        assert out.splitlines()[0] == "@acme/web-app (1.0.0)"
        assert "@acme/core" in out

    def test_json_with_depth(self, tmp_path: Path, capsys) -> None:
        root = _workspace(tmp_path)
        with mock.patch.dict(os.environ, _CLEAN_ENV, clear=False):
            result = cmd_tree(_args(root, depth=1, json=True))
        data = json.loads(capsys.readouterr().out)
        assert result == 0
        assert data[0]["name"] == "@acme/web-app"
        assert data[0]["children"][0]["children"] == []

    def test_empty_workspace(self, tmp_path: Path, capsys) -> None:
        root = _workspace(tmp_path, {"placeholder": "skip"})
        with mock.patch.dict(os.environ, _CLEAN_ENV, clear=False):
            result = cmd_tree(_args(root, depth=None))
        assert result == 1


class TestMain:
    """Tests for main entry point."""

    def test_version(self, capsys) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0
        assert "0.1.0" in capsys.readouterr().out

    def test_help(self, capsys) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["--help"])
        assert exc_info.value.code == 0
        out = capsys.readouterr().out
        assert "wsresolve" in out
        for command in ("resolve", "check", "order", "tree", "graph", "tui"):
            assert command in out

    def test_no_command(self, capsys) -> None:
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out

    def test_resolve_help(self, capsys) -> None:
        with pytest.raises(SystemExit):
            main(["resolve", "--help"])
        out = capsys.readouterr().out
        assert "--link-root" in out
        assert "--dry-run" in out
        assert "--lenient-versions" in out

    def test_order_command(self, tmp_path: Path, capsys) -> None:
        root = _workspace(tmp_path)
        with mock.patch.dict(os.environ, _CLEAN_ENV, clear=False):
            result = main(["order", "--root", str(root), "-q"])
        assert result == 0
        assert "1. @acme/core" in capsys.readouterr().out

    def test_resolve_command(self, tmp_path: Path) -> None:
        root = _workspace(tmp_path)
        with mock.patch.dict(os.environ, _CLEAN_ENV, clear=False):
            result = main(["resolve", "--root", str(root), "-q", "-m", "out/m.json"])
        assert result == 0
        assert (root / "out" / "m.json").exists()


class TestGraphHelpers:
    """Tests for graph generation helper functions."""

    def test_collect_edges_skips_unknown(self) -> None:
        assert _collect_edges(_graph()) == {("@acme/api", "@acme/core")}

    def test_mermaid_id(self) -> None:
        assert _mermaid_id("@acme/web-app") == "acme__web_app"
        assert _mermaid_id("lib.utils") == "lib_utils"

    def test_generate_dot(self) -> None:
        dot = _generate_dot(_graph(), title="Workspace: ws")
        assert dot.startswith("digraph dependencies {")
        assert 'label="Workspace: ws";' in dot
        assert '"@acme/api" -> "@acme/core";' in dot
        assert "ghost" not in dot
        assert '"@acme/api" [label="@acme/api\\nv1.0.0", style="rounded,filled", fillcolor=lightblue];' in dot

    def test_generate_dot_no_highlight(self) -> None:
        dot = _generate_dot(_graph(), highlight_roots=False)
        assert "fillcolor" not in dot
        assert "label=" in dot

    def test_generate_mermaid(self) -> None:
        mermaid = _generate_mermaid(_graph(), title="Workspace: ws")
        assert mermaid.startswith("---\ntitle: Workspace: ws\n---\ngraph LR")
        assert "acme__api --> acme__core" in mermaid
        assert "style acme__api fill:#lightblue" in mermaid


class TestCmdGraph:
    """Tests for cmd_graph."""

    def _graph_args(self, root: Path, **kwargs) -> argparse.Namespace:
        base = {"format": "dot", "output": None, "no_title": False, "render": None}
        base.update(kwargs)
        return _args(root, **base)

    def test_dot_stdout(self, tmp_path: Path, capsys) -> None:
        root = _workspace(tmp_path)
        with mock.patch.dict(os.environ, _CLEAN_ENV, clear=False):
            result = cmd_graph(self._graph_args(root))
        out = capsys.readouterr().out
        assert result == 0
        assert 'label="Workspace: ws";' in out
        assert '"@acme/web-app" -> "@acme/api";' in out

    def test_mermaid_to_file_without_title(self, tmp_path: Path, capsys) -> None:
        root = _workspace(tmp_path)
        out_file = tmp_path / "deps.mmd"
        with mock.patch.dict(os.environ, _CLEAN_ENV, clear=False):
            result = cmd_graph(self._graph_args(root, format="mermaid", output=str(out_file), no_title=True))
        assert result == 0
        content = out_file.read_text()
        assert content.startswith("graph LR")
        assert "Graph written to" in capsys.readouterr().err

    def test_empty_workspace(self, tmp_path: Path, capsys) -> None:
        root = _workspace(tmp_path, {})
        with mock.patch.dict(os.environ, _CLEAN_ENV, clear=False):
            result = cmd_graph(self._graph_args(root))
        assert result == 1
        assert "No workspace packages found." in capsys.readouterr().err

    def test_render_mermaid_error(self, tmp_path: Path, capsys) -> None:
        root = _workspace(tmp_path)
        with mock.patch.dict(os.environ, _CLEAN_ENV, clear=False):
            result = cmd_graph(self._graph_args(root, format="mermaid", render="png"))
        assert result == 1
        assert "mermaid" in capsys.readouterr().err.lower()

    def test_render_uses_suffix(self, tmp_path: Path) -> None:
        root = _workspace(tmp_path)
        with mock.patch.dict(os.environ, _CLEAN_ENV, clear=False):
            with mock.patch("wsresolve.cli._render_dot", return_value=True) as render:
                result = cmd_graph(self._graph_args(root, render="svg", output=str(tmp_path / "deps.png")))
        assert result == 0
        assert render.call_args[0][1] == tmp_path / "deps.svg"
        assert render.call_args[0][2] == "svg"


class TestGraphvizHelpers:
    """Tests for Graphviz helper functions."""

    def test_check_graphviz(self) -> None:
        assert isinstance(_check_graphviz(), bool)

    def test_render_dot_no_graphviz(self, tmp_path: Path, capsys) -> None:
        with mock.patch("wsresolve.cli.shutil.which", return_value=None):
            result = _render_dot("digraph {}", tmp_path / "out.png", "png")
        assert result is False
        assert "Graphviz not found" in capsys.readouterr().err

    def test_render_dot_with_graphviz(self, tmp_path: Path) -> None:
        if not _check_graphviz():
            pytest.skip("graphviz not installed")
        output = tmp_path / "test.png"
        assert _render_dot('digraph { "A" -> "B"; }', output, "png") is True
        assert output.exists()
