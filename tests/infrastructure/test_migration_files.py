"""Test migration file validation and structure."""

import ast
from importlib.util import module_from_spec, spec_from_file_location
from pathlib import Path
from typing import List

import pytest


def get_migration_files() -> List[Path]:
    """Get list of all migration files."""
    versions_dir = Path(__file__).parent.parent.parent / "alembic" / "versions"
    return sorted(versions_dir.glob("*.py"))


def load_migration(path: Path):
    spec = spec_from_file_location(path.stem, path)
    module = module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestMigrationFileStructure:
    """Test migration files have correct structure and metadata."""

    def test_initial_migration_exists(self):
        names = [f.name for f in get_migration_files()]

        assert any(name.startswith("001_initial") for name in names), "Initial schema migration not found"

    @pytest.mark.parametrize("migration_file", get_migration_files(), ids=lambda p: p.name)
    def test_migration_file_syntax(self, migration_file):
        try:
            ast.parse(migration_file.read_text(encoding="utf-8"))
        except SyntaxError as e:
            pytest.fail(f"Syntax error in {migration_file.name}: {e}")

    @pytest.mark.parametrize("migration_file", get_migration_files(), ids=lambda p: p.name)
    def test_migration_file_headers(self, migration_file):
        content = migration_file.read_text(encoding="utf-8")

        assert content.strip().startswith('"""'), f"{migration_file.name} should start with docstring"
        docstring = content[3:content.find('"""', 3)]
        for field in ("Revision ID:", "Revises:", "Create Date:"):
            assert field in docstring, f"{migration_file.name} missing {field} in docstring"

    @pytest.mark.parametrize("migration_file", get_migration_files(), ids=lambda p: p.name)
    def test_migration_file_metadata(self, migration_file):
        module = load_migration(migration_file)

        assert isinstance(module.revision, str)
        assert callable(module.upgrade)
        assert callable(module.downgrade)

    def test_revision_chain_is_linear(self):
        modules = [load_migration(path) for path in get_migration_files()]
        revisions = {module.revision: module.down_revision for module in modules}

        roots = [rev for rev, down in revisions.items() if down is None]
        assert roots == ["001"]
        for revision, down_revision in revisions.items():
            assert down_revision is None or down_revision in revisions, \
                f"{revision} points at missing revision {down_revision}"
