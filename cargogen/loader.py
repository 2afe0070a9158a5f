"""Load a build graph description from a TOML file.

Example::

    workspace_root = "."

    [[targets]]
    label = "//lib1:lib1"
    kind = "library"
    version = "0.1.0"
    edition = "2021"
    srcs = ["lib1/src/lib.rs"]
    deps = ["@serde//:serde"]

Source paths are relative to the target's ``workspace_root``, which
defaults to the graph's workspace root for main-repository labels and to
``<workspace_root>/external/<repo>`` for external ones.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import toml

from .errors import EntryPointNotFoundError, GraphDefinitionError
from .graph import BuildGraph
from .models import CrateInfo, GraphNode, Label, NodeKind

logger = logging.getLogger(__name__)

_ROOT_CANDIDATES = {True: ("lib.rs",), False: ("main.rs",)}


def load_graph(graph_file: Path) -> BuildGraph:
    """Parse ``graph_file`` into a validated :class:`BuildGraph`."""
    try:
        data = toml.load(str(graph_file))
    except (OSError, toml.TomlDecodeError) as exc:
        raise GraphDefinitionError(f"Cannot read graph file {graph_file}: {exc}") from exc
    return graph_from_dict(data, base_dir=Path(os.path.abspath(graph_file)).parent)


def graph_from_dict(data: Dict[str, Any], base_dir: Path) -> BuildGraph:
    workspace_root = _resolve(base_dir, str(data.get("workspace_root", ".")))
    targets = data.get("targets", [])
    if not isinstance(targets, list):
        raise GraphDefinitionError("'targets' must be an array of tables")

    nodes = [_parse_target(entry, workspace_root) for entry in targets]
    graph = BuildGraph.from_nodes(nodes)
    logger.debug("Loaded %d target(s) from %s", len(graph), base_dir)
    return graph


def _parse_target(entry: Any, workspace_root: Path) -> GraphNode:
    if not isinstance(entry, dict) or "label" not in entry:
        raise GraphDefinitionError(f"Every target needs a 'label': {entry!r}")

    label = Label.parse(str(entry["label"]))
    kind = NodeKind.parse(str(entry.get("kind", "other")))
    deps = tuple(Label.parse(str(dep), label.package) for dep in _as_list(entry, "deps"))
    external = bool(entry.get("external", label.is_external))

    if "workspace_root" in entry:
        root_dir = _resolve(workspace_root, str(entry["workspace_root"]))
    elif label.is_external:
        root_dir = workspace_root / "external" / label.repo
    else:
        root_dir = workspace_root

    build_file = str(entry.get("build_file") or "/".join(p for p in (label.package, "BUILD.bazel") if p))

    crate = None
    if kind.is_supported:
        srcs = tuple(_resolve(root_dir, src) for src in _as_list(entry, "srcs"))
        if not srcs:
            raise GraphDefinitionError(f"{label} declares no sources")
        root = _crate_root(label, kind, srcs, entry.get("root"), root_dir)
        crate = CrateInfo(
            srcs=srcs,
            root=root,
            version=_optional_str(entry.get("version")),
            edition=_optional_str(entry.get("edition")),
        )

    return GraphNode(
        label=label,
        kind=kind,
        crate=crate,
        deps=deps,
        external=external,
        workspace_root=root_dir,
        build_file=build_file,
    )


def _crate_root(label: Label, kind: NodeKind, srcs: tuple, declared: Any, root_dir: Path) -> Path:
    if declared is not None:
        root = _resolve(root_dir, str(declared))
        if root not in srcs:
            raise EntryPointNotFoundError(f"Crate root {declared} of {label} is not listed in srcs")
        return root
    if len(srcs) == 1:
        return srcs[0]
    for candidate in _ROOT_CANDIDATES[kind.is_library] + (f"{label.name}.rs",):
        matches = [src for src in srcs if src.name == candidate]
        if len(matches) == 1:
            return matches[0]
    raise EntryPointNotFoundError(f"Cannot infer the crate root of {label}; set 'root'")


def _resolve(base: Path, value: str) -> Path:
    return Path(os.path.normpath(base / value))


def _as_list(entry: Dict[str, Any], key: str) -> List[str]:
    value = entry.get(key, [])
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise GraphDefinitionError(f"'{key}' of {entry.get('label')} must be a list")
    return [str(item) for item in value]


def _optional_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)
