from __future__ import annotations

from pathlib import Path

from repo_symlink.index import iter_document_files, matches_ignore, matches_link


def _write(root: Path, relative: str, text: str = "x\n") -> None:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def _build_repo(root: Path) -> Path:
    repo = root / "alpha"
    for relative in [
        "README.md",
        "docs/guide.md",
        "docs/drafts/wip.md",
        "src/notes.md",
        "src/main.py",
        "node_modules/pkg/readme.md",
        "lib/docs/drafts/kept.md",
    ]:
        _write(repo, relative)
    return repo


def test_anchored_and_bare_ignore_entries(tmp_path: Path) -> None:
    repo = _build_repo(tmp_path)

    documents = iter_document_files(repo, ignore=("node_modules", "docs/drafts"))

    assert documents == [
        "README.md",
        "docs/guide.md",
        "lib/docs/drafts/kept.md",
        "src/notes.md",
    ]


def test_linked_subpaths_are_pruned(tmp_path: Path) -> None:
    repo = _build_repo(tmp_path)

    documents = iter_document_files(repo, ignore=("node_modules",), linked=("docs",))

    assert documents == ["README.md", "lib/docs/drafts/kept.md", "src/notes.md"]


def test_extensions_match_case_insensitively(tmp_path: Path) -> None:
    repo = _build_repo(tmp_path)
    _write(repo, "NOTES.TXT")

    documents = iter_document_files(
        repo, extensions=(".txt",), ignore=("node_modules",), linked=("docs",)
    )

    assert documents == ["NOTES.TXT"]


def test_matchers() -> None:
    assert matches_ignore("a/node_modules/x", ["node_modules"])
    assert matches_ignore("docs/drafts", ["docs/drafts"])
    assert not matches_ignore("lib/docs/drafts", ["docs/drafts"])
    assert not matches_ignore("node_modules_old", ["node_modules"])
    assert matches_link("docs/guide.md", ["docs"])
    assert not matches_link("docsite/index.md", ["docs"])


def test_excluded_directories_are_pruned(tmp_path: Path) -> None:
    repo = _build_repo(tmp_path)
    _write(repo, "vault/own.md")
    _write(repo, "vault/.repo_symlink/notes.md")

    repo = repo.resolve()
    documents = iter_document_files(
        repo, ignore=("node_modules",), linked=("docs",), exclude=[repo / "vault"]
    )

    assert documents == ["README.md", "lib/docs/drafts/kept.md", "src/notes.md"]
