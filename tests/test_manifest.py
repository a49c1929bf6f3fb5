"""Tests for package.json loading."""
import pytest

from nodeship.core.errors import PreconditionError
from nodeship.discovery.manifest import AppManifest, ManifestError, load_manifest


class TestLoadManifest:
    """App name extraction and lifecycle script detection."""

    def test_name_extracted_exactly(self, tmp_path, make_manifest):
        make_manifest(tmp_path, {"name": "foo"})

        assert load_manifest(tmp_path).name == "foo"

    def test_name_is_stripped(self, tmp_path, make_manifest):
        make_manifest(tmp_path, {"name": "  foo  "})

        assert load_manifest(tmp_path).name == "foo"

    def test_missing_name_fails(self, tmp_path, make_manifest):
        make_manifest(tmp_path, {"version": "1.0.0"})

        with pytest.raises(ManifestError) as exc_info:
            load_manifest(tmp_path)

        assert "Could not extract app name" in str(exc_info.value)

    def test_bad_scripts_names_the_field(self, tmp_path, make_manifest):
        make_manifest(tmp_path, {"name": "shop", "scripts": ["build", "start"]})

        with pytest.raises(ManifestError) as exc_info:
            load_manifest(tmp_path)

        message = str(exc_info.value)
        assert "scripts" in message
        assert "app name" not in message

    def test_empty_name_fails(self, tmp_path, make_manifest):
        make_manifest(tmp_path, {"name": "   "})

        with pytest.raises(ManifestError):
            load_manifest(tmp_path)

    def test_missing_file_fails(self, tmp_path):
        with pytest.raises(ManifestError) as exc_info:
            load_manifest(tmp_path)

        assert "No package.json found" in str(exc_info.value)

    def test_invalid_json_fails(self, tmp_path):
        (tmp_path / "package.json").write_text('{"name": "foo",')

        with pytest.raises(ManifestError) as exc_info:
            load_manifest(tmp_path)

        assert "Invalid JSON" in str(exc_info.value)

    def test_non_object_fails(self, tmp_path):
        (tmp_path / "package.json").write_text('["foo"]')

        with pytest.raises(ManifestError):
            load_manifest(tmp_path)

    def test_manifest_error_is_precondition(self):
        assert issubclass(ManifestError, PreconditionError)


class TestScripts:

    def test_build_and_start(self):
        manifest = AppManifest(name="shop", scripts={"build": "vite build", "start": "node ."})

        assert manifest.has_build
        assert manifest.has_start

    def test_no_scripts(self):
        manifest = AppManifest(name="shop")

        assert not manifest.has_build
        assert not manifest.has_start

    def test_null_scripts(self, tmp_path, make_manifest):
        make_manifest(tmp_path, {"name": "shop", "scripts": None})

        assert load_manifest(tmp_path).scripts == {}

    def test_unknown_keys_ignored(self, tmp_path, make_manifest):
        make_manifest(tmp_path, {"name": "shop", "private": True, "dependencies": {"react": "^19"}})

        assert load_manifest(tmp_path).name == "shop"
