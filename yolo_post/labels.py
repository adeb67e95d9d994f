from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple, Union

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def find_project_root(
    start: Optional[PathLike] = None,
    markers: Sequence[str] = ("pyproject.toml", "setup.py", ".git", "requirements.txt"),
) -> Path:
    """
    Best-effort project root discovery, used to resolve relative asset paths.
    """

    p = Path(start) if start is not None else Path.cwd()
    p = p.resolve()

    # If a file is provided, start from its directory.
    if p.is_file():
        p = p.parent

    for parent in (p, *p.parents):
        for m in markers:
            if (parent / m).exists():
                return parent
    return p


def resolve_path(path: PathLike, root: Optional[PathLike] = "auto") -> Path:
    """
    Resolve `path` to an absolute Path.

    - Absolute paths are returned as-is.
    - Relative paths are resolved against `root` if given, else the project root.
    """

    p = Path(path)
    if p.is_absolute():
        return p

    if root == "auto" or root is None:
        base = find_project_root()
    else:
        base = Path(root).resolve()

    return (base / p).resolve()


def load_labels(path: PathLike, root: Optional[PathLike] = "auto") -> Tuple[str, ...]:
    """
    Load a plain-text label file: one class name per line, blank lines skipped.

    The line order defines the class ids.
    """

    resolved = resolve_path(path, root=root)
    if not resolved.exists():
        raise FileNotFoundError(f"Label file not found: {resolved}")

    labels = []
    with open(resolved, "r", encoding="utf-8") as f:
        for raw in f:
            line = raw.strip()
            if line:
                labels.append(line)

    if not labels:
        logger.warning("No labels found in %s; every class will be reported as Unknown", resolved)
    else:
        logger.debug("Loaded %d labels from %s", len(labels), resolved)
    return tuple(labels)


def load_class_names(metadata_path: PathLike, root: Optional[PathLike] = "auto") -> Tuple[str, ...]:
    """
    Load class names from the `names:` block of a YOLO export `metadata.yaml`:

        names:
          0: person
          1: bicycle
          ...

    Ids must run contiguously from 0. Parsed by hand, no PyYAML dependency.
    """

    resolved = resolve_path(metadata_path, root=root)
    if not resolved.exists():
        raise FileNotFoundError(f"Metadata file not found: {resolved}")

    names: Dict[int, str] = {}
    in_names = False

    with open(resolved, "r", encoding="utf-8") as f:
        for raw in f:
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            if line == "names:":
                in_names = True
                continue
            if not in_names:
                continue
            # A top-level key ends the block.
            if not raw[:1].isspace():
                break

            # Parse "id: label"
            if ":" not in line:
                continue
            left, right = line.split(":", 1)
            left = left.strip()
            right = right.strip().strip("'").strip('"')
            if not left.isdigit():
                continue
            names[int(left)] = right

    expected = list(range(len(names)))
    if sorted(names) != expected:
        raise ValueError(f"Class ids in {resolved} must be contiguous from 0, got {sorted(names)}")
    return tuple(names[i] for i in expected)
