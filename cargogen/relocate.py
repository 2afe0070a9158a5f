"""Copy external crate sources next to their generated manifest.

Sources of external crates live under a volatile external repository root,
so a manifest cannot refer to them by a stable relative path. Copying them
into the node's own output directory gives every generated manifest a
predictable ``path`` for its crate root.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import List, Tuple

from .errors import EntryPointNotFoundError, InvalidPathError, NotExternalError
from .models import GraphNode, RelocationResult

logger = logging.getLogger(__name__)


def plan_relocation(node: GraphNode, output_dir: Path) -> Tuple[List[Tuple[Path, Path]], Path]:
    """Compute ``(source, destination)`` pairs without touching the disk.

    Returns:
        The copy plan in source order, and the destination of the crate root.
    """
    if not node.external:
        raise NotExternalError(f"{node.label} is not an external target")
    assert node.crate is not None

    external_root = Path(os.path.normpath(node.workspace_root))
    root = Path(os.path.normpath(node.crate.root))
    plan: List[Tuple[Path, Path]] = []
    new_root = None
    for src in node.crate.srcs:
        src_path = Path(os.path.normpath(src))
        try:
            suffix = src_path.relative_to(external_root)
        except ValueError as exc:
            raise InvalidPathError(
                f"{src} of {node.label} is outside its repository root {external_root}"
            ) from exc
        output = output_dir / suffix
        plan.append((src_path, output))
        if src_path == root:
            new_root = output

    if new_root is None:
        raise EntryPointNotFoundError(
            f"Crate root {node.crate.root} of {node.label} is not among its sources"
        )
    return plan, new_root


def relocate_sources(node: GraphNode, output_dir: Path) -> RelocationResult:
    """Copy every source of an external ``node`` under ``output_dir``.

    The whole plan is validated before the first copy, so a node with
    inconsistent metadata leaves nothing behind.
    """
    plan, new_root = plan_relocation(node, output_dir)
    for src, output in plan:
        output.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src, output)
    logger.debug("Copied %d source(s) of %s into %s", len(plan), node.label, output_dir)
    return RelocationResult(outputs=[output for _, output in plan], root=new_root)
