import pytest

from dir2llm.tree import generate_tree, render_tree_lines, render_tree_markdown


@pytest.mark.unit
def test_generate_tree_groups_directories_before_files() -> None:
    root = generate_tree(["b.txt", "a/c.txt", "a/d.txt"])

    assert [(c.name, c.is_dir) for c in root.children] == [("a", True), ("b.txt", False)]
    assert [c.name for c in root.children[0].children] == ["c.txt", "d.txt"]


@pytest.mark.unit
def test_generate_tree_shares_directory_nodes() -> None:
    root = generate_tree(["src/pkg/a.py", "src/pkg/b.py", "src/main.py"])

    assert len(root.children) == 1
    src = root.children[0]
    assert [(c.name, c.is_dir) for c in src.children] == [("pkg", True), ("main.py", False)]
    assert len(src.children[0].children) == 2


@pytest.mark.unit
def test_generate_tree_sorts_case_sensitively() -> None:
    root = generate_tree(["b.py", "B.py", "a.py"])

    assert [c.name for c in root.children] == ["B.py", "a.py", "b.py"]


@pytest.mark.unit
def test_generate_tree_of_nothing_is_an_empty_root() -> None:
    root = generate_tree([])

    assert root.is_dir
    assert root.children == []


@pytest.mark.unit
def test_render_tree_markdown() -> None:
    root = generate_tree(["b.txt", "a/c.txt", "a/d.txt"])

    assert render_tree_markdown(root) == ["- a/", "  - c.txt", "  - d.txt", "- b.txt"]


@pytest.mark.unit
def test_render_tree_lines() -> None:
    root = generate_tree(["b.txt", "a/c.txt", "a/d.txt"])

    assert render_tree_lines(root) == [
        ".",
        "├── a/",
        "│   ├── c.txt",
        "│   └── d.txt",
        "└── b.txt",
    ]
