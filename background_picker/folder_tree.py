"""Group scanned images by folder for a tree-style presentation."""

from __future__ import annotations

import os
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from background_picker.path_utils import abs_path_str, relative_to_root
from background_picker.thumbnail_engine.models import SourceImage

ROOT_FOLDER = "."


@dataclass
class FolderTree:
    root: str
    folders: dict[str, list[SourceImage]] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.folders)

    def __iter__(self):
        return iter(self.folders)

    def images(self, folder: str) -> list[SourceImage]:
        return self.folders.get(folder, [])

    def image_count(self) -> int:
        return sum(len(v) for v in self.folders.values())

    def label(self, folder: str) -> str:
        count = len(self.images(folder))
        name = "Root" if folder == ROOT_FOLDER else folder
        return f"{name} ({count} images)"

    def relative_path(self, image: SourceImage | str) -> str:
        path = image.absolute_path if isinstance(image, SourceImage) else image
        return relative_to_root(path, self.root)


def build_folder_tree(root: str | Path, images: Iterable[SourceImage]) -> FolderTree:
    """Folders keyed by path relative to ``root`` ("." for the root), sorted."""
    root_str = abs_path_str(root)
    grouped: dict[str, list[SourceImage]] = {}
    for image in images:
        parent = os.path.dirname(image.absolute_path)
        folder = relative_to_root(parent, root_str)
        grouped.setdefault(folder, []).append(image)
    ordered = {k: sorted(grouped[k], key=lambda i: i.absolute_path) for k in sorted(grouped)}
    return FolderTree(root=root_str, folders=ordered)
