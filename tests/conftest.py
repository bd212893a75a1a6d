import pytest
from fastapi.testclient import TestClient

from filebrowser.config import Settings
from filebrowser.main import create_app
from filebrowser.sandbox import PathResolver


@pytest.fixture
def root(tmp_path):
    root = tmp_path / "data"
    root.mkdir()
    return root


@pytest.fixture
def settings(root):
    return Settings(
        root=root,
        max_upload_size=1024,
        allowed_extensions=frozenset({"txt", "md", "png"}),
        archive_chunk_size=1024,
        archive_queue_size=2,
    )


@pytest.fixture
def resolver(root):
    return PathResolver(root)


@pytest.fixture
def test_app(settings):
    return create_app(settings)


@pytest.fixture
def client(test_app):
    return TestClient(test_app)
