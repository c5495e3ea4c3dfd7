"""
Normalization of user-supplied package specifications.

Specifications arrive as plain source strings, mappings loaded from JSON
config, or PackageSpec objects. They are validated here, bound to a path
under the packages root, and de-duplicated before any git work starts.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any, Union

from pydantic import ValidationError

from gitpack.core.exceptions import ConflictError, SpecError
from gitpack.core.packages.models import PackageSpec, ResolvedPackage

SpecInput = Union[str, Mapping[str, Any], PackageSpec]


def normalize_spec(spec: SpecInput) -> PackageSpec:
    """
    Validate one specification.

    Args:
        spec: Source string, mapping with ``source``/``name``/``version``,
            or an existing PackageSpec

    Returns:
        Validated PackageSpec with ``name`` filled in

    Raises:
        SpecError: If the specification is malformed
    """
    if isinstance(spec, PackageSpec):
        return spec
    data: Any = {"source": spec} if isinstance(spec, str) else spec
    if not isinstance(data, Mapping):
        raise SpecError(f"Package spec must be a string or mapping, got {type(spec).__name__}")
    try:
        return PackageSpec.model_validate(dict(data))
    except ValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'spec'}: {err['msg']}" for err in e.errors()
        )
        raise SpecError(f"Invalid package spec {spec!r}: {details}") from e


def resolve_package(spec: SpecInput, packages_root: Path) -> ResolvedPackage:
    normalized = normalize_spec(spec)
    return ResolvedPackage(spec=normalized, path=packages_root / normalized.name)


def normalize_packages(packages: Iterable[ResolvedPackage]) -> list[ResolvedPackage]:
    """
    Merge duplicated packages and reject conflicting ones.

    The first occurrence of a path keeps its position. An unset version on
    either side adopts the other side's version.

    Raises:
        ConflictError: If two packages for one path differ in source or version
    """
    by_path: dict[Path, ResolvedPackage] = {}
    for pkg in packages:
        existing = by_path.get(pkg.path)
        if existing is None:
            by_path[pkg.path] = pkg
            continue

        ref_spec, spec = existing.spec, pkg.spec
        if ref_spec.version is None and spec.version is not None:
            ref_spec = ref_spec.model_copy(update={"version": spec.version})
            existing.spec = ref_spec
        if spec.version is None:
            spec = spec.model_copy(update={"version": ref_spec.version})

        if ref_spec.source != spec.source:
            raise ConflictError(spec.name, "source", ref_spec.source, spec.source)
        if ref_spec.version != spec.version:
            raise ConflictError(spec.name, "version", ref_spec.version, spec.version)

    return list(by_path.values())


def resolve_packages(specs: Iterable[SpecInput], packages_root: Path) -> list[ResolvedPackage]:
    """Validate, bind and de-duplicate a list of specifications."""
    return normalize_packages(resolve_package(spec, packages_root) for spec in specs)
