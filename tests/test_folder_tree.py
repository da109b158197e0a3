from background_picker.folder_tree import ROOT_FOLDER, build_folder_tree
from background_picker.thumbnail_engine.models import SourceImage


def _images(root, *names):
    return [SourceImage(str(root / n), 0, 1) for n in names]


def test_groups_by_relative_folder(root):
    images = _images(root, "sub/c.webp", "b.jpg", "a.png", "sub/deep/d.png")
    tree = build_folder_tree(root, images)

    assert list(tree) == [ROOT_FOLDER, "sub", "sub/deep"]
    assert [i.name for i in tree.images(ROOT_FOLDER)] == ["a.png", "b.jpg"]
    assert [i.name for i in tree.images("sub")] == ["c.webp"]
    assert tree.image_count() == 4
    assert len(tree) == 3


def test_labels(root):
    tree = build_folder_tree(root, _images(root, "a.png", "b.jpg", "c.gif", "sub/d.png"))
    assert tree.label(ROOT_FOLDER) == "Root (3 images)"
    assert tree.label("sub") == "sub (1 images)"
    assert tree.label("missing") == "missing (0 images)"


def test_relative_path(root):
    (image,) = _images(root, "sub/c.webp")
    tree = build_folder_tree(root, [image])
    assert tree.relative_path(image) == "sub/c.webp"
    assert tree.relative_path("/elsewhere/x.png") == "/elsewhere/x.png"


def test_empty(root):
    tree = build_folder_tree(root, [])
    assert len(tree) == 0
    assert tree.image_count() == 0
