"""Core data models shared by the loader, traversal, and generator."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import FrozenSet, List, Optional, Tuple

from .errors import GraphDefinitionError


class NodeKind(str, Enum):
    LIBRARY = "library"
    SHARED_LIBRARY = "shared-library"
    STATIC_LIBRARY = "static-library"
    BINARY = "binary"
    OTHER = "other"

    @classmethod
    def parse(cls, value: str) -> "NodeKind":
        """Map a declared kind to a NodeKind; unknown kinds become OTHER."""
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER

    @property
    def is_library(self) -> bool:
        return self in LIBRARY_KINDS

    @property
    def is_supported(self) -> bool:
        return self is not NodeKind.OTHER


LIBRARY_KINDS = frozenset(
    {NodeKind.LIBRARY, NodeKind.SHARED_LIBRARY, NodeKind.STATIC_LIBRARY}
)


@dataclass(frozen=True, order=True)
class Label:
    """A target label such as ``@repo//package/path:name``."""

    repo: str
    package: str
    name: str

    @classmethod
    def parse(cls, text: str, current_package: str = "") -> "Label":
        raw = text.strip()
        repo = ""
        if raw.startswith("@"):
            if "//" not in raw:
                # "@repo" is shorthand for "@repo//:repo"
                raw = f"{raw}//:{raw[1:]}"
            repo, raw = raw[1:].split("//", 1)
            raw = "//" + raw
            if not repo:
                raise GraphDefinitionError(f"Invalid label '{text}': empty repository name")

        if raw.startswith("//"):
            body = raw[2:]
            if ":" in body:
                package, name = body.split(":", 1)
            else:
                package = body
                name = body.rsplit("/", 1)[-1] if body else repo
        elif raw.startswith(":"):
            package, name = current_package, raw[1:]
        else:
            raise GraphDefinitionError(f"Invalid label '{text}': expected '//' or ':' prefix")

        package = package.strip("/")
        if not name or "/" in name or ":" in name:
            raise GraphDefinitionError(f"Invalid label '{text}': bad target name '{name}'")
        return cls(repo=repo, package=package, name=name)

    @property
    def is_external(self) -> bool:
        return bool(self.repo)

    def __str__(self) -> str:
        prefix = f"@{self.repo}" if self.repo else ""
        return f"{prefix}//{self.package}:{self.name}"


@dataclass(frozen=True)
class CrateInfo:
    """Crate metadata carried only by nodes of a supported kind."""

    srcs: Tuple[Path, ...]
    root: Path
    version: Optional[str] = None
    edition: Optional[str] = None


@dataclass(frozen=True)
class GraphNode:
    """One buildable unit in the dependency graph."""

    label: Label
    kind: NodeKind
    crate: Optional[CrateInfo] = None
    deps: Tuple[Label, ...] = ()
    external: bool = False
    workspace_root: Path = Path(".")
    build_file: str = ""

    def __post_init__(self) -> None:
        if self.kind.is_supported and self.crate is None:
            raise GraphDefinitionError(f"{self.label} is a {self.kind.value} but carries no crate info")
        if not self.kind.is_supported and self.crate is not None:
            raise GraphDefinitionError(f"{self.label} has an unsupported kind but carries crate info")

    @property
    def name(self) -> str:
        return self.label.name


@dataclass(frozen=True)
class RelocationResult:
    outputs: List[Path]
    root: Path


@dataclass(frozen=True)
class ManifestResult:
    """Published output for one node: its manifest and everything it pulls in."""

    manifest: Path
    deps: FrozenSet[Path] = frozenset()
    relocated: Tuple[Path, ...] = ()
    files: FrozenSet[Path] = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "files", frozenset({self.manifest}) | self.deps | frozenset(self.relocated)
        )

    @property
    def manifest_dir(self) -> Path:
        return self.manifest.parent
