# Tests for the directory lister and the GET /files endpoint.

import os

import pytest

from filebrowser.errors import DirectoryNotFound, NotADirectory, RootNotConfigured
from filebrowser.listing import DirectoryLister
from filebrowser.models import PageRequest
from filebrowser.sandbox import PathResolver


@pytest.fixture
def lister(resolver):
    return DirectoryLister(resolver)


def _page(path="/", page=1, limit=20, search=""):
    return PageRequest.clamped(path, page, limit, search)


class TestDirectoryLister:
    def test_example_page(self, lister, root):
        (root / "docs").mkdir()
        (root / "a.txt").write_text("a")
        (root / "b.txt").write_text("b")

        result = lister.list_directory(_page(limit=2))
        assert [entry.name for entry in result.files] == ["docs", "a.txt"]
        assert result.total == 3
        assert result.has_more is True

    def test_entry_fields(self, lister, root):
        (root / "docs").mkdir()
        (root / "Photo.PNG").write_bytes(b"x" * 42)
        (root / "README").write_text("readme")

        entries = {entry.name: entry for entry in lister.list_directory(_page()).files}
        assert entries["docs"].type == "directory"
        assert entries["docs"].size == 0
        assert entries["docs"].extension is None
        assert entries["docs"].path == "/docs"
        assert entries["Photo.PNG"].type == "file"
        assert entries["Photo.PNG"].size == 42
        assert entries["Photo.PNG"].extension == "png"
        assert entries["README"].extension is None
        assert entries["README"].last_modified.endswith("Z")

    def test_nested_paths_are_root_relative(self, lister, root):
        (root / "docs" / "guides").mkdir(parents=True)
        (root / "docs" / "guides" / "intro.md").write_text("#")

        result = lister.list_directory(_page("/docs/guides"))
        assert [entry.path for entry in result.files] == ["/docs/guides/intro.md"]

    def test_directories_first_then_case_insensitive(self, lister, root):
        for name in ("b.txt", "C.txt", "a.txt"):
            (root / name).write_text(name)
        for name in ("zeta", "Alpha"):
            (root / name).mkdir()

        names = [entry.name for entry in lister.list_directory(_page()).files]
        assert names == ["Alpha", "zeta", "a.txt", "b.txt", "C.txt"]

    def test_hidden_entries_excluded(self, lister, root):
        (root / ".hidden").mkdir()
        (root / ".env").write_text("SECRET=1")
        (root / "visible.txt").write_text("hi")

        names = [entry.name for entry in lister.list_directory(_page()).files]
        assert names == ["visible.txt"]

    def test_search_is_case_insensitive(self, lister, root):
        for name in ("Report-2024.txt", "summary.md", "old_REPORT.txt"):
            (root / name).write_text(name)

        result = lister.list_directory(_page(search="report"))
        assert [entry.name for entry in result.files] == ["old_REPORT.txt", "Report-2024.txt"]
        assert result.total == 2

    def test_broken_symlink_skipped(self, lister, root):
        (root / "ok.txt").write_text("ok")
        os.symlink(root / "does-not-exist", root / "dangling")

        result = lister.list_directory(_page())
        assert [entry.name for entry in result.files] == ["ok.txt"]
        assert result.total == 1

    def test_symlink_leaving_sandbox_skipped(self, lister, root, tmp_path):
        outside = tmp_path / "outside.txt"
        outside.write_text("x" * 500)
        (root / "real").mkdir()
        os.symlink(outside, root / "leak.txt")
        os.symlink(tmp_path, root / "leakdir")
        os.symlink(root / "real", root / "alias")

        result = lister.list_directory(_page())
        assert [entry.name for entry in result.files] == ["alias", "real"]
        assert all(entry.type == "directory" for entry in result.files)

    def test_paging_reconstructs_listing(self, lister, root):
        for i in range(17):
            (root / f"file{i:02d}.txt").write_text(str(i))
        for i in range(6):
            (root / f"dir{i}").mkdir()

        full = [entry.name for entry in lister.list_directory(_page(limit=100)).files]
        collected = []
        page = 1
        while True:
            result = lister.list_directory(_page(page=page, limit=5))
            collected.extend(entry.name for entry in result.files)
            assert result.total == 23
            if not result.has_more:
                break
            page += 1

        assert collected == full
        assert len(set(collected)) == 23
        assert page == 5

    def test_limit_larger_than_total(self, lister, root):
        (root / "a.txt").write_text("a")
        (root / "b.txt").write_text("b")

        result = lister.list_directory(_page(limit=50))
        assert len(result.files) == 2
        assert result.has_more is False

    def test_page_past_the_end(self, lister, root):
        (root / "a.txt").write_text("a")
        result = lister.list_directory(_page(page=9, limit=10))
        assert result.files == []
        assert result.total == 1
        assert result.has_more is False

    def test_not_a_directory(self, lister, root):
        (root / "a.txt").write_text("a")
        with pytest.raises(NotADirectory):
            lister.list_directory(_page("/a.txt"))

    def test_directory_not_found(self, lister):
        with pytest.raises(DirectoryNotFound):
            lister.list_directory(_page("/missing"))

    def test_root_not_configured(self, tmp_path):
        lister = DirectoryLister(PathResolver(tmp_path / "gone"))
        with pytest.raises(RootNotConfigured):
            lister.list_directory(_page())


class TestPageRequest:
    @pytest.mark.parametrize("limit, expected", [
        (None, 20),
        (0, 20),
        (-5, 20),
        (1, 1),
        (100, 100),
        (500, 100),
    ])
    def test_limit_clamping(self, limit, expected):
        assert PageRequest.clamped("/", 1, limit, None).limit == expected

    @pytest.mark.parametrize("page, expected", [(None, 1), (0, 1), (-3, 1), (4, 4)])
    def test_page_clamping(self, page, expected):
        assert PageRequest.clamped("/", page, 10, None).page == expected

    def test_configured_default(self):
        assert PageRequest.clamped(None, 1, 0, None, default_limit=35).limit == 35

    def test_offset(self):
        assert PageRequest.clamped("/", 3, 10, None).offset == 20


class TestListEndpoint:
    def test_json_shape(self, client, root):
        (root / "docs").mkdir()
        (root / "a.txt").write_text("a")
        (root / "b.txt").write_text("b")

        resp = client.get("/files", params={"path": "/", "page": 1, "limit": 2})
        assert resp.status_code == 200
        data = resp.json()
        assert [f["name"] for f in data["files"]] == ["docs", "a.txt"]
        assert data["total"] == 3
        assert data["hasMore"] is True
        assert data["page"] == 1
        assert data["limit"] == 2
        assert "lastModified" in data["files"][0]

    def test_defaults(self, client, root):
        (root / "a.txt").write_text("a")
        data = client.get("/files").json()
        assert data["limit"] == 20
        assert data["hasMore"] is False

    def test_non_positive_limit_uses_default(self, client, root):
        (root / "a.txt").write_text("a")
        data = client.get("/files", params={"limit": 0, "page": 0}).json()
        assert data["limit"] == 20
        assert data["page"] == 1

    def test_malformed_page(self, client):
        resp = client.get("/files", params={"page": "abc"})
        assert resp.status_code == 422

    def test_traversal(self, client, root):
        resp = client.get("/files", params={"path": "../../etc"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "PathEscape"
        assert str(root) not in resp.text

    def test_not_a_directory(self, client, root):
        (root / "a.txt").write_text("a")
        resp = client.get("/files", params={"path": "/a.txt"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "NotADirectory"

    def test_missing_directory(self, client, root):
        resp = client.get("/files", params={"path": "/nope"})
        assert resp.status_code == 404
        assert resp.json()["error"] == "DirectoryNotFound"
        assert "/nope" in resp.json()["detail"]
        assert str(root) not in resp.text
