"""Project scaffolding for `mathsyntax new`."""

from __future__ import annotations

from pathlib import Path

_CONFIG_TEMPLATE = """\
[package]
name = "{name}"
version = "0.1.0"

[check]
sources = ["src/**/*.sig"]

[output]
color = true
"""

_MAIN_SIG_TEMPLATE = """\
// Natural numbers.
pub use std::bool::*;

pub mod nat;

zero: nat;
pub fn succ(n: nat) -> nat;
pub fn add(a: nat, b: nat) -> nat;
pub fn eq(a: nat)(b: nat) -> bool; // curried
"""

_GITIGNORE = """\
__pycache__/
.venv/
"""

_README_TEMPLATE = """\
# {name}

Function signatures in mathematical notation.

## Check

```bash
mathsyntax check
```
"""


def scaffold(name: str, parent: Path | None = None) -> Path:
    """Create a new project directory. Returns the project path."""
    base = parent or Path.cwd()
    project_dir = base / name

    if project_dir.exists():
        raise FileExistsError(f"Directory '{name}' already exists")

    src_dir = project_dir / "src"
    src_dir.mkdir(parents=True)

    (project_dir / "mathsyntax.toml").write_text(_CONFIG_TEMPLATE.format(name=name))
    (src_dir / "main.sig").write_text(_MAIN_SIG_TEMPLATE)
    (project_dir / ".gitignore").write_text(_GITIGNORE)
    (project_dir / "README.md").write_text(_README_TEMPLATE.format(name=name))

    return project_dir
