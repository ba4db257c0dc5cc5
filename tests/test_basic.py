"""Basic tests to verify the package is importable and functional."""

import transferstate


def test_version():
    """Test that version is defined."""
    assert transferstate.__version__ == "0.1.0"


def test_exports():
    """Test that main exports are available."""
    assert hasattr(transferstate, "TaskStateStore")
    assert hasattr(transferstate, "LocalDocumentStore")
    assert hasattr(transferstate, "MemoryDocumentStore")
    assert hasattr(transferstate, "TaskRecord")
    assert hasattr(transferstate, "DecodeError")
