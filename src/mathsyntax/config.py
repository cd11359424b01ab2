"""TOML config loading for mathsyntax.toml."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

CONFIG_NAME = "mathsyntax.toml"


@dataclass
class PackageConfig:
    name: str = "untitled"
    version: str = "0.0.0"


@dataclass
class CheckConfig:
    sources: list[str] = field(default_factory=lambda: ["src/**/*.sig"])


@dataclass
class OutputConfig:
    color: bool = True


@dataclass
class MathSyntaxConfig:
    package: PackageConfig = field(default_factory=PackageConfig)
    check: CheckConfig = field(default_factory=CheckConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    root: Path = field(default_factory=Path.cwd)

    def source_files(self) -> list[Path]:
        """Expand the source patterns relative to the config directory.

        Files are returned sorted within each pattern, in pattern order,
        without duplicates.
        """
        files: list[Path] = []
        seen: set[Path] = set()
        for pattern in self.check.sources:
            for path in sorted(self.root.glob(pattern)):
                if path.is_file() and path not in seen:
                    seen.add(path)
                    files.append(path)
        return files


def find_config(start_path: Path | None = None) -> Path:
    """Walk up directories to find mathsyntax.toml. Raises FileNotFoundError."""
    path = (start_path or Path.cwd()).resolve()
    if path.is_file():
        path = path.parent
    while True:
        candidate = path / CONFIG_NAME
        if candidate.exists():
            return candidate
        parent = path.parent
        if parent == path:
            raise FileNotFoundError(f"No {CONFIG_NAME} found in any parent directory")
        path = parent


def load_config(path: Path) -> MathSyntaxConfig:
    """Parse a mathsyntax.toml file into a MathSyntaxConfig."""
    with open(path, "rb") as f:
        data = tomllib.load(f)

    config = MathSyntaxConfig(root=path.parent)

    if "package" in data:
        pkg = data["package"]
        config.package = PackageConfig(
            name=pkg.get("name", "untitled"),
            version=pkg.get("version", "0.0.0"),
        )

    if "check" in data:
        chk = data["check"]
        config.check = CheckConfig(
            sources=list(chk.get("sources", ["src/**/*.sig"])),
        )

    if "output" in data:
        out = data["output"]
        config.output = OutputConfig(
            color=out.get("color", True),
        )

    return config
