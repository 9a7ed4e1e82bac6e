"""Shared fixtures: a small on-disk crate with manifest, lockfile and toolchain pin."""

from __future__ import annotations

from pathlib import Path

import pytest

MANIFEST = """
[package]
name = "vrenv"
version = "1.2.0"
edition = "2021"

[dependencies]
anyhow = "1"
clap = { version = "4", features = ["derive"] }
"""

LOCKFILE = """
version = 3

[[package]]
name = "anyhow"
version = "1.0.86"
source = "registry+https://github.com/rust-lang/crates.io-index"
checksum = "b3d1d046238990b9cf5bcde22a3fb3584ee5cf65fb2765f454ed428c7a0063da"

[[package]]
name = "clap"
version = "4.5.4"
source = "registry+https://github.com/rust-lang/crates.io-index"
checksum = "90bc066a67923782aa8515dbaea16946c5bcc5addbd668bb80af688e53e548a0"
dependencies = [
 "clap_lex",
]

[[package]]
name = "clap_lex"
version = "0.7.0"
source = "registry+https://github.com/rust-lang/crates.io-index"
checksum = "98cc8fbded0c607b7ba9dd60cd98df59af97e84d24e49c8557331cfc26d301ce"

[[package]]
name = "vrenv"
version = "1.2.0"
dependencies = [
 "anyhow",
 "clap",
]
"""

TOOLCHAIN = """
[toolchain]
channel = "1.78.0"
components = ["clippy", "rustfmt"]
profile = "minimal"
"""


def write_crate(root: Path) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    (root / "Cargo.toml").write_text(MANIFEST)
    (root / "Cargo.lock").write_text(LOCKFILE)
    (root / "rust-toolchain.toml").write_text(TOOLCHAIN)
    (root / "src").mkdir(exist_ok=True)
    (root / "src" / "main.rs").write_text('fn main() { println!("vrenv"); }\n')
    return root


@pytest.fixture
def crate(tmp_path: Path) -> Path:
    return write_crate(tmp_path / "crate")


@pytest.fixture
def make_crate(tmp_path: Path):
    """Factory writing further copies of the sample crate under tmp_path."""

    def factory(name: str) -> Path:
        return write_crate(tmp_path / name)

    return factory


@pytest.fixture
def inputs(crate: Path) -> dict[str, Path]:
    """Keyword arguments for BuildMatrix.from_files pointing at the sample crate."""
    return {
        "manifest": crate / "Cargo.toml",
        "lockfile": crate / "Cargo.lock",
        "toolchain": crate / "rust-toolchain.toml",
        "source": crate,
    }
