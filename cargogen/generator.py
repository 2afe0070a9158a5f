"""Render and write one Cargo.toml per crate in the build graph."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

import toml

from .graph import BuildGraph, WalkReport
from .models import GraphNode, Label, ManifestResult
from .paths import relativize
from .relocate import relocate_sources

logger = logging.getLogger(__name__)

DEFAULT_GENERATOR_NAME = "cargogen"
DEFAULT_VERSION = "0.0.0"
DEFAULT_EDITION = "2021"
MANIFEST_NAME = "Cargo.toml"

_CARGO_MANIFEST_TEMPLATE = """\
# Generated by {generator} from `{target_label}` in `{build_file_path}`
[package]
name = {name}
version = {version}
edition = {edition}

{crate_type}
name = {name}
path = {path}

[dependencies]
{dependencies}
"""

_WORKSPACE_TEMPLATE = """\
# Generated by {generator}
[workspace]
members = [
{members}]
"""

_encoder = toml.TomlEncoder()


def _quote(value: str) -> str:
    return _encoder.dump_value(value)


def write_atomic(path: Path, content: str) -> None:
    """Write ``content`` to ``path`` so readers never see a partial file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


class ManifestGenerator:
    """Creates a separate Cargo.toml for each library or binary node.

    Each manifest lives in its own directory under ``output_root`` keyed by
    the node's label, and refers to its crate root and to its dependencies'
    manifests by relative path only.
    """

    def __init__(
        self,
        output_root: Path,
        generator_name: str = DEFAULT_GENERATOR_NAME,
        default_version: str = DEFAULT_VERSION,
        default_edition: str = DEFAULT_EDITION,
    ) -> None:
        self.output_root = Path(os.path.abspath(output_root))
        self.generator_name = generator_name
        self.default_version = default_version
        self.default_edition = default_edition

    def output_dir(self, label: Label) -> Path:
        if label.is_external:
            base = self.output_root / "external" / label.repo
        else:
            base = self.output_root / "_main"
        return base / label.package / label.name

    def manifest_path(self, label: Label) -> Path:
        return self.output_dir(label) / MANIFEST_NAME

    def render(
        self,
        node: GraphNode,
        root_src: Path,
        manifest_dir: Path,
        deps: Sequence[Tuple[str, ManifestResult]],
    ) -> str:
        assert node.crate is not None
        dependencies = "\n".join(
            "{} = {{ path = {} }}".format(name, _quote(relativize(result.manifest_dir, manifest_dir)))
            for name, result in deps
        )
        return _CARGO_MANIFEST_TEMPLATE.format(
            generator=self.generator_name,
            target_label=node.label,
            build_file_path=node.build_file,
            crate_type="[lib]" if node.kind.is_library else "[[bin]]",
            name=_quote(node.name),
            version=_quote(node.crate.version or self.default_version),
            edition=_quote(node.crate.edition or self.default_edition),
            path=_quote(relativize(os.path.abspath(root_src), manifest_dir)),
            dependencies=dependencies,
        )

    def generate(
        self,
        node: GraphNode,
        dep_results: Mapping[Label, Optional[ManifestResult]],
    ) -> Optional[ManifestResult]:
        """Write the manifest for ``node`` and publish its result.

        Args:
            node: The node being visited.
            dep_results: Results already published for (at least) every
                direct dependency of ``node``; ``None`` marks a dependency
                of an unsupported kind.

        Returns:
            The published result, or ``None`` when ``node`` is not a crate.
        """
        if not node.kind.is_supported:
            logger.debug("Skipping %s: unsupported kind", node.label)
            return None
        assert node.crate is not None

        rust_deps: List[Tuple[str, ManifestResult]] = []
        for dep in node.deps:
            result = dep_results.get(dep)
            if result is not None:
                rust_deps.append((dep.name, result))

        output_dir = self.output_dir(node.label)
        manifest = output_dir / MANIFEST_NAME

        # External crate sources are copied so the manifest can reach its
        # crate root through a stable relative path.
        if node.external:
            relocation = relocate_sources(node, output_dir)
            srcs = tuple(relocation.outputs)
            root_src = relocation.root
        else:
            srcs = ()
            root_src = node.crate.root

        content = self.render(node, root_src, output_dir, rust_deps)
        write_atomic(manifest, content)
        logger.info("Wrote %s for %s", manifest, node.label)

        deps = frozenset().union(*(result.files for _, result in rust_deps))
        return ManifestResult(manifest=manifest, deps=deps, relocated=srcs)


def generate_manifests(
    graph: BuildGraph,
    generator: ManifestGenerator,
    targets: Optional[Iterable[Label]] = None,
    jobs: int = 1,
    keep_going: bool = False,
) -> WalkReport:
    """Run ``generator`` over ``graph`` bottom-up."""
    return graph.walk(generator.generate, targets=targets, jobs=jobs, keep_going=keep_going)


def write_workspace_manifest(
    results: Iterable[ManifestResult],
    path: Path,
    generator_name: str = DEFAULT_GENERATOR_NAME,
) -> Path:
    """Write a Cargo workspace whose members are the given manifests."""
    path = Path(os.path.abspath(path))
    members = sorted({relativize(result.manifest_dir, path.parent) for result in results})
    content = _WORKSPACE_TEMPLATE.format(
        generator=generator_name,
        members="".join(f"    {_quote(member)},\n" for member in members),
    )
    write_atomic(path, content)
    logger.info("Wrote workspace manifest %s with %d member(s)", path, len(members))
    return path
