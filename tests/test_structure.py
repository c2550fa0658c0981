"""Tests for the mdindex package structure."""


def test_package_imports():
    """Test that main package can be imported."""
    import mdindex

    assert mdindex.__version__ == "0.1.0"


def test_service_subpackage():
    """Test that service subpackage exists."""
    import mdindex.service

    assert mdindex.service is not None


def test_client_subpackage():
    """Test that client subpackage exists."""
    import mdindex.client

    assert mdindex.client is not None


def test_exception_hierarchy():
    """Test that every error derives from MdIndexError and renders its details."""
    from mdindex.exceptions import (
        EmbeddingError,
        EmbeddingTimeout,
        MdIndexError,
        PartialBatchFailure,
        UnsupportedFileType,
        VectorStoreError,
        VectorStoreUnavailable,
    )

    timeout = EmbeddingTimeout(30.0)
    assert isinstance(timeout, EmbeddingError)
    assert "timeout" in str(timeout)

    failure = PartialBatchFailure(3, timeout)
    assert failure.index == 3
    assert failure.cause is timeout

    unavailable = VectorStoreUnavailable("down", operation="search")
    assert isinstance(unavailable, VectorStoreError)
    assert unavailable.operation == "search"
    assert "'operation': 'search'" in str(unavailable)

    assert isinstance(UnsupportedFileType("a.docx"), MdIndexError)
    assert str(MdIndexError("plain")) == "plain"
