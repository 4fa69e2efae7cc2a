"""Package and source file resolution for coverage units.

A coverage unit is the import-path-qualified file name recorded in a
profile, e.g. ``github.com/user/mod/pkg/file.go``. Resolution maps it to
the import path of its owning package and to the file on disk.

Two strategies:
- GoListResolver asks the go toolchain (``go list -e -json``) where each
  package lives, which handles GOPATH, vendoring and module replacements.
- ModuleResolver reads ``go.mod`` and maps units under the module path onto
  the module root, for environments without a toolchain.
"""

from __future__ import annotations

import json
import posixpath
import shutil
import subprocess
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from tarp.core.errors import ResolutionError
from tarp.core.logging import get_logger

if TYPE_CHECKING:
    from tarp.config.models import ResolveConfig

log = get_logger(__name__)


class Resolver(Protocol):
    """Maps coverage units to packages and source files."""

    def prepare(self, units: Iterable[str]) -> None:
        """Resolve a batch of units up front. Optional optimization."""
        ...

    def resolve_unit(self, unit: str) -> str:
        """Import path of the package owning ``unit``.

        Raises:
            ResolutionError: If the unit cannot be mapped to a package.
        """
        ...

    def find_file(self, unit: str) -> Path:
        """Path of the source file backing ``unit``.

        Raises:
            ResolutionError: If no file can be located.
        """
        ...


def is_local(unit: str) -> bool:
    """Units recorded with a relative or absolute file path, not an import path."""
    return unit.startswith(".") or unit.startswith("/")


def package_of(unit: str) -> str:
    return posixpath.dirname(unit)


@dataclass(frozen=True, slots=True)
class GoPackage:
    """The subset of ``go list -json`` output used for resolution."""

    import_path: str
    dir: str
    error: str | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> GoPackage:
        err = data.get("Error")
        return cls(
            import_path=data.get("ImportPath", ""),
            dir=data.get("Dir", ""),
            error=err.get("Err") if isinstance(err, dict) else None,
        )


def decode_json_stream(text: str) -> list[dict[str, Any]]:
    """Decode concatenated JSON objects, as printed by ``go list -json``."""
    decoder = json.JSONDecoder()
    objects: list[dict[str, Any]] = []
    pos = 0
    while True:
        while pos < len(text) and text[pos].isspace():
            pos += 1
        if pos >= len(text):
            return objects
        obj, pos = decoder.raw_decode(text, pos)
        objects.append(obj)


class GoListResolver:
    """Resolver backed by ``go list``."""

    def __init__(self, workdir: Path | None = None, go_binary: str = "go") -> None:
        self._workdir = workdir
        self._go = go_binary
        self._packages: dict[str, GoPackage] = {}

    def prepare(self, units: Iterable[str]) -> None:
        wanted = sorted(
            {package_of(u) for u in units if not is_local(u)} - self._packages.keys()
        )
        if not wanted:
            return
        for pkg in self._go_list(wanted):
            self._packages[pkg.import_path] = pkg
        log.info("packages_resolved", packages=len(wanted))

    def _go_list(self, packages: list[str]) -> list[GoPackage]:
        cmd = [self._go, "list", "-e", "-json", *packages]
        try:
            result = subprocess.run(
                cmd,
                cwd=self._workdir,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            raise ResolutionError.unresolved(packages[0], f"cannot run {self._go}: {e}") from e

        if result.returncode != 0:
            reason = result.stderr.strip() or f"go list exited with {result.returncode}"
            raise ResolutionError.unresolved(packages[0], reason)

        try:
            return [GoPackage.from_json(obj) for obj in decode_json_stream(result.stdout)]
        except json.JSONDecodeError as e:
            raise ResolutionError.unresolved(
                packages[0], f"unreadable go list output: {e}"
            ) from e

    def _package(self, unit: str) -> GoPackage:
        name = package_of(unit)
        if name not in self._packages:
            self.prepare([unit])
        pkg = self._packages.get(name)
        if pkg is None:
            raise ResolutionError.unresolved(unit, "did not find package in go list output")
        if pkg.error:
            raise ResolutionError.unresolved(unit, pkg.error)
        return pkg

    def resolve_unit(self, unit: str) -> str:
        if is_local(unit):
            return package_of(unit)
        return self._package(unit).import_path

    def find_file(self, unit: str) -> Path:
        if is_local(unit):
            return _local_file(unit, self._workdir)
        pkg = self._package(unit)
        if not pkg.dir:
            raise ResolutionError.unresolved(unit, "package has no directory")
        return Path(pkg.dir) / posixpath.basename(unit)


class ModuleResolver:
    """Resolver that maps units onto a module checkout using its go.mod."""

    def __init__(self, root: Path) -> None:
        self._root = root
        self._module: str | None = None

    @property
    def module_path(self) -> str:
        if self._module is None:
            self._module = read_module_path(self._root / "go.mod")
        return self._module

    def prepare(self, units: Iterable[str]) -> None:
        for unit in units:
            self.resolve_unit(unit)

    def _relative(self, unit: str) -> str:
        module = self.module_path
        if unit.startswith(module + "/"):
            return unit[len(module) + 1 :]
        raise ResolutionError.unresolved(unit, f"not inside module {module}")

    def resolve_unit(self, unit: str) -> str:
        if not is_local(unit):
            self._relative(unit)
        return package_of(unit)

    def find_file(self, unit: str) -> Path:
        if is_local(unit):
            return _local_file(unit, self._root)
        return self._root / self._relative(unit)


def read_module_path(go_mod: Path) -> str:
    """Module path declared by the ``module`` directive of a go.mod file."""
    try:
        text = go_mod.read_text()
    except OSError as e:
        raise ResolutionError.unresolved(str(go_mod), f"cannot read go.mod: {e}") from e
    for line in text.splitlines():
        parts = line.split("//", 1)[0].split()
        if len(parts) == 2 and parts[0] == "module":
            return parts[1].strip('"')
    raise ResolutionError.unresolved(str(go_mod), "no module directive")


def _local_file(unit: str, base: Path | None) -> Path:
    path = Path(unit)
    if not path.is_absolute() and base is not None:
        path = base / path
    if not path.exists():
        raise ResolutionError.unresolved(unit, f"file not found: {path}")
    return path


def make_resolver(config: ResolveConfig, workdir: Path | None = None) -> Resolver:
    """Build the resolver selected by configuration."""
    root = Path(config.module_root) if config.module_root else (workdir or Path.cwd())
    strategy = config.strategy
    if strategy == "auto":
        strategy = "go-list" if shutil.which(config.go_binary) else "module"
    log.debug("resolver_selected", strategy=strategy, root=str(root))
    if strategy == "go-list":
        return GoListResolver(workdir=root, go_binary=config.go_binary)
    return ModuleResolver(root)
