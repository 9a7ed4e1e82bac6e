"""Tests for buildmatrix.image."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from pydantic import ValidationError

from buildmatrix.context import Context
from buildmatrix.environment import resolve_environment
from buildmatrix.errors import ConfigurationError
from buildmatrix.image import ImageDescriptor, build_image
from buildmatrix.lockfile import LockedDependencies, LockedPackage
from buildmatrix.manifest import Manifest
from buildmatrix.package import build_package
from buildmatrix.platforms import Platform
from buildmatrix.sources import SourceTree

MANIFEST = Manifest(name="vrenv", version="1.2.0")


def _package(ident: str = "x86_64-linux"):
    env = resolve_environment(Platform.parse(ident))
    source = SourceTree(path=".", digest="sha256:00", file_count=0)
    lock = LockedDependencies(root=LockedPackage(name="vrenv", version="1.2.0"))
    return build_package(env, MANIFEST, source, lock)


class TestBuildImage:
    def test_name_and_tag_from_manifest(self):
        image = build_image(_package(), MANIFEST)
        assert image.name == "vrenv"
        assert image.tag == "1.2.0"
        assert image.reference == "vrenv:1.2.0"

    def test_cmd_is_package_main_program(self):
        image = build_image(_package(), MANIFEST)
        assert image.cmd == ("/bin/vrenv",)

    def test_contents_are_exactly_package_executables(self):
        pkg = _package()
        image = build_image(pkg, MANIFEST)
        assert image.contents == (f"{pkg.out_path}/bin/vrenv",)
        assert image.source_package == pkg.out_path

    def test_platform_follows_package(self):
        assert str(build_image(_package("aarch64-darwin"), MANIFEST).platform) == "aarch64-darwin"

    def test_created_now_is_wall_clock(self, caplog):
        before = datetime.now(UTC)
        with caplog.at_level("WARNING", logger="buildmatrix.image"):
            image = build_image(_package(), MANIFEST, created="now")
        assert before <= image.created <= datetime.now(UTC)
        assert "not reproducible" in caplog.text

    def test_fixed_created_is_reproducible(self):
        a = build_image(_package(), MANIFEST, created="2024-01-01T00:00:00Z")
        b = build_image(_package(), MANIFEST, created="2024-01-01T00:00:00Z")
        assert a == b
        assert a.created == datetime(2024, 1, 1, tzinfo=UTC)

    def test_naive_timestamp_is_utc(self):
        image = build_image(_package(), MANIFEST, created="2024-01-01T12:00:00")
        assert image.created.utcoffset() == timedelta(0)

    def test_invalid_created_raises(self):
        with pytest.raises(ConfigurationError, match="yesterday"):
            build_image(_package(), MANIFEST, created="yesterday")


class _Target:
    manifest = MANIFEST


class TestImageDescriptor:
    def test_requires_packages(self):
        assert ImageDescriptor.requires == ("packages",)

    def test_build_reads_package_output(self):
        pkg = _package("aarch64-linux")
        env = resolve_environment(Platform.parse("aarch64-linux"))
        ctx = Context(_Target(), env, outputs={"packages": {"aarch64-linux": pkg}})
        image = ImageDescriptor(created="2024-01-01T00:00:00+00:00").build(ctx)
        assert image.cmd == ("/bin/vrenv",)
        assert image.source_package == pkg.out_path

    def test_invalid_created_rejected_at_construction(self):
        with pytest.raises(ValidationError):
            ImageDescriptor(created="not-a-date")

    def test_prepare_pins_now(self):
        desc = ImageDescriptor()
        prepared = desc.prepare()
        assert prepared.created != "now"
        assert datetime.fromisoformat(prepared.created).utcoffset() == timedelta(0)
        assert desc.created == "now"

    def test_prepare_keeps_fixed_timestamp(self):
        desc = ImageDescriptor(created="2024-01-01T00:00:00+00:00")
        assert desc.prepare() is desc
