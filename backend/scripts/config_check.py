"""Validate deployment configuration for the study backend.

Each deployment target is a ``ProviderValidator`` subclass; subclasses
register themselves by ``name`` and every public ``check_*`` method runs.

    class FlyValidator(ProductionValidator):
        name = "fly"

        def check_region_pinned(self, settings: Settings, result: ValidationResult) -> None:
            ...

``--target fly`` then shows up in the CLI.
"""

from __future__ import annotations

import argparse
import inspect
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import ClassVar

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from config import DEFAULT_SESSION_SECRET, Settings, get_settings  # noqa: E402

MIN_SESSION_SECRET_LENGTH = 32


@dataclass
class ValidationResult:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)

    @property
    def ok(self) -> bool:
        return not self.errors

    def __bool__(self) -> bool:
        return self.ok


_REGISTRY: dict[str, type[ProviderValidator]] = {}


class ProviderValidator(ABC):
    name: ClassVar[str]

    def __init_subclass__(cls, **kwargs: object) -> None:
        super().__init_subclass__(**kwargs)
        if inspect.isabstract(cls):
            return
        if not isinstance(getattr(cls, "name", None), str):
            raise TypeError(f"{cls.__name__} must define a `name: ClassVar[str]`")
        if cls.name in _REGISTRY and _REGISTRY[cls.name] is not cls:
            raise ValueError(f"Duplicate validator name: {cls.name!r}")
        _REGISTRY[cls.name] = cls

    def validate(self, settings: Settings, result: ValidationResult) -> None:
        for attr in sorted(dir(self)):
            if attr.startswith("check_") and callable(getattr(self, attr)):
                getattr(self, attr)(settings, result)

    @abstractmethod
    def describe(self) -> str: ...


class LocalValidator(ProviderValidator):
    """Local development; only the identity provider must be usable."""

    name = "local"

    def describe(self) -> str:
        return "local development"

    def check_identity_provider(self, settings: Settings, result: ValidationResult) -> None:
        auth = settings.auth
        if auth.shared_secret:
            return
        if not auth.jwks_url or not auth.issuer:
            result.add_warning(
                "Neither AUTH__SHARED_SECRET nor AUTH__JWKS_URL + AUTH__ISSUER is set; "
                "researcher login will fail."
            )


class ProductionValidator(LocalValidator):
    """Hosted deployment checks."""

    name = "production"

    def describe(self) -> str:
        return "hosted deployment"

    def check_database_is_remote(self, settings: Settings, result: ValidationResult) -> None:
        try:
            url = settings.sync_database_url
        except RuntimeError as exc:
            result.add_error(f"DATABASE__URL resolution failed: {exc}")
            return
        if "localhost" in url or "@db:" in url:
            result.add_error("DATABASE__URL points to a local host instead of a managed database.")

    def check_cors_not_wildcard(self, settings: Settings, result: ValidationResult) -> None:
        if "*" in settings.app.cors_origins:
            result.add_warning("APP__CORS_ORIGINS includes '*', which is too permissive for production.")

    def check_session_secret(self, settings: Settings, result: ValidationResult) -> None:
        secret = settings.auth.session_secret
        if secret == DEFAULT_SESSION_SECRET:
            result.add_error("AUTH__SESSION_SECRET is still the development default.")
        elif len(secret) < MIN_SESSION_SECRET_LENGTH:
            result.add_error(
                f"AUTH__SESSION_SECRET must be at least {MIN_SESSION_SECRET_LENGTH} characters."
            )

    def check_cookie_secure(self, settings: Settings, result: ValidationResult) -> None:
        if not settings.auth.cookie_secure:
            result.add_error("AUTH__COOKIE_SECURE must be true when served over HTTPS.")

    def check_researcher_allowlist(self, settings: Settings, result: ValidationResult) -> None:
        if not settings.auth.researcher_allowlist:
            result.add_warning("AUTH__RESEARCHER_ALLOWLIST is empty; nobody can sign in.")

    def check_identity_provider(self, settings: Settings, result: ValidationResult) -> None:
        auth = settings.auth
        if auth.shared_secret:
            result.add_warning("AUTH__SHARED_SECRET (HS256) is set; prefer JWKS in production.")
            return
        if not auth.jwks_url or not auth.issuer:
            result.add_error("AUTH__JWKS_URL and AUTH__ISSUER are required for researcher login.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--target",
        choices=sorted(_REGISTRY),
        default="local",
        help="Validation profile (deployment target).",
    )
    return parser


def run_checks(target: str, settings: Settings) -> ValidationResult:
    result = ValidationResult()
    _REGISTRY[target]().validate(settings, result)
    return result


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    validator = _REGISTRY[args.target]()
    print(f"config check  target={validator.name} ({validator.describe()})")

    try:
        result = run_checks(args.target, get_settings())
    except Exception as exc:  # pragma: no cover
        result = ValidationResult()
        result.add_error(f"Failed to parse settings: {exc}")

    for w in result.warnings:
        print(f"WARN: {w}")
    for e in result.errors:
        print(f"ERROR: {e}", file=sys.stderr)

    if not result:
        print(f"\nConfig check failed: {len(result.errors)} error(s).")
        return 1

    suffix = f" ({len(result.warnings)} warning(s))" if result.warnings else ""
    print(f"\nConfig check passed.{suffix}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
