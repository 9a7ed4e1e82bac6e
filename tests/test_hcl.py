"""Tests for buildmatrix.hcl."""

from __future__ import annotations

from pathlib import Path

import pytest

from buildmatrix.errors import ConfigurationError
from buildmatrix.hcl import _clean, load, load_matrix
from buildmatrix.platforms import DEFAULT_PLATFORMS

CONFIG = """
platforms = ["x86_64-linux", "aarch64-darwin"]

catalog = {
  bacon    = "3.12.0"
  libiconv = "1.17"
}

devshell {
  packages = ["bacon", "rust-toolchain"]
  env = {
    PROJECT = "${manifest.name}"
  }

  when {
    os       = "darwin"
    packages = ["libiconv"]
  }
}

image {
  created = "2024-01-01T00:00:00+00:00"
}
"""


def _write_hcl(directory: Path, content: str, filename: str = "matrix.hcl") -> Path:
    f = directory / filename
    f.write_text(content)
    return f


class TestClean:
    def test_strips_block_metadata(self):
        assert _clean({"image": [{"created": "now", "__is_block__": True}]}) == {
            "image": [{"created": "now"}]
        }

    def test_strips_string_quotes(self):
        assert _clean({'"go-task"': '"3.41.0"'}) == {"go-task": "3.41.0"}

    def test_leaves_plain_values(self):
        assert _clean({"a": ["b", 1, True]}) == {"a": ["b", 1, True]}


class TestLoad:
    def test_parses_attributes_and_blocks(self, tmp_path):
        data = load(_write_hcl(tmp_path, CONFIG))
        assert data["platforms"] == ["x86_64-linux", "aarch64-darwin"]
        assert data["devshell"][0]["packages"] == ["bacon", "rust-toolchain"]

    def test_keeps_interpolation_references(self, tmp_path):
        data = load(_write_hcl(tmp_path, CONFIG))
        assert data["devshell"][0]["env"]["PROJECT"] == "${manifest.name}"

    def test_renders_jinja_context(self, tmp_path):
        f = _write_hcl(tmp_path, 'image {\n  created = "{{ stamp }}"\n}\n')
        data = load(f, context={"stamp": "2024-05-05T00:00:00"})
        assert data["image"][0]["created"] == "2024-05-05T00:00:00"

    def test_renders_process_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("BUILDMATRIX_STAMP", "2024-06-06T00:00:00")
        f = _write_hcl(tmp_path, 'image {\n  created = "{{ env.BUILDMATRIX_STAMP }}"\n}\n')
        assert load(f)["image"][0]["created"] == "2024-06-06T00:00:00"

    def test_undefined_template_variable_raises(self, tmp_path):
        f = _write_hcl(tmp_path, 'source = "{{ nope }}"\n')
        with pytest.raises(ConfigurationError, match="nope"):
            load(f)

    def test_syntax_error_raises(self, tmp_path):
        f = _write_hcl(tmp_path, "devshell {\n  packages = [\n")
        with pytest.raises(ConfigurationError, match="matrix.hcl"):
            load(f)

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load(tmp_path / "matrix.hcl")


class TestLoadMatrix:
    def test_directory_uses_default_file(self, crate):
        _write_hcl(crate, CONFIG)
        bm = load_matrix(crate)
        assert bm.platforms.ids == ("x86_64-linux", "aarch64-darwin")
        assert bm.catalog == {"bacon": "3.12.0", "libiconv": "1.17"}

    def test_paths_relative_to_config(self, crate):
        _write_hcl(crate, CONFIG)
        bm = load_matrix(crate / "matrix.hcl")
        assert bm.manifest.name == "vrenv"
        assert bm.toolchain.channel == "1.78.0"
        assert bm.source.path == crate / "."

    def test_all_descriptors_present(self, crate):
        _write_hcl(crate, CONFIG)
        outputs = [d.output for d in load_matrix(crate).descriptors]
        assert outputs == ["packages", "dev_shells", "images"]

    def test_descriptor_blocks_decoded(self, crate):
        _write_hcl(crate, CONFIG)
        devshell = load_matrix(crate).descriptors[1]
        assert devshell.packages == ("bacon", "rust-toolchain")
        assert devshell.when[0].os == "darwin"
        assert devshell.when[0].packages == ("libiconv",)

    def test_minimal_config_uses_defaults(self, crate):
        _write_hcl(crate, "")
        bm = load_matrix(crate)
        assert bm.platforms.ids == DEFAULT_PLATFORMS
        assert bm.descriptors[2].created == "now"

    def test_toolchain_file_optional_by_default(self, crate):
        (crate / "rust-toolchain.toml").unlink()
        _write_hcl(crate, "")
        assert load_matrix(crate).toolchain is None

    def test_explicit_toolchain_must_exist(self, crate):
        (crate / "rust-toolchain.toml").unlink()
        _write_hcl(crate, 'toolchain = "rust-toolchain.toml"\n')
        with pytest.raises(ConfigurationError, match="Toolchain file not found"):
            load_matrix(crate)

    def test_custom_paths(self, tmp_path, crate):
        _write_hcl(
            tmp_path,
            'manifest = "crate/Cargo.toml"\n'
            'lockfile = "crate/Cargo.lock"\n'
            'toolchain = "crate/rust-toolchain.toml"\n'
            'source = "crate"\n',
        )
        assert load_matrix(tmp_path).manifest.version == "1.2.0"

    def test_unknown_key_raises(self, crate):
        _write_hcl(crate, 'flavour = "vanilla"\n')
        with pytest.raises(ConfigurationError, match="flavour"):
            load_matrix(crate)

    def test_unknown_platform_raises(self, crate):
        _write_hcl(crate, 'platforms = ["x86_64-windows"]\n')
        with pytest.raises(ConfigurationError, match="windows"):
            load_matrix(crate)

    def test_duplicate_block_raises(self, crate):
        _write_hcl(crate, 'image {\n  created = "now"\n}\nimage {\n  created = "now"\n}\n')
        with pytest.raises(ConfigurationError, match="Only one 'image'"):
            load_matrix(crate)

    def test_invalid_block_attribute_raises(self, crate):
        _write_hcl(crate, 'image {\n  created = "soon"\n}\n')
        with pytest.raises(ConfigurationError, match="image"):
            load_matrix(crate)
