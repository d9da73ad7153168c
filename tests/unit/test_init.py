"""Test the main package initialization."""


def test_import_main_package() -> None:
    """Test that the main package can be imported without errors."""
    import armgen

    assert armgen.__version__ == "0.1.0"


class TestPackageStructure:
    """Test the package structure and imports."""

    def test_core_module_import(self) -> None:
        """Test that core module can be imported."""
        from armgen import core  # noqa: F401

    def test_generators_module_import(self) -> None:
        """Test that generators module can be imported."""
        from armgen import generators  # noqa: F401

    def test_runtime_module_import(self) -> None:
        """Test that runtime module can be imported."""
        from armgen import runtime  # noqa: F401

    def test_sync_module_import(self) -> None:
        """Test that sync module can be imported."""
        from armgen import sync  # noqa: F401

    def test_cli_module_import(self) -> None:
        """Test that CLI module can be imported."""
        from armgen import cli  # noqa: F401

    def test_top_level_exports(self) -> None:
        """Test the pipeline entry points are re-exported."""
        from armgen import (  # noqa: F401
            ResourceFactory,
            SchemaParser,
            SyncSettings,
            TypeGenerator,
            ValidationGenerator,
            generate_all,
        )
