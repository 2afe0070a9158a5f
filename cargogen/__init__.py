"""cargogen: Cargo.toml manifests for every crate in a build graph."""

__version__ = "0.1.0"
