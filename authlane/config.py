"""
authlane/config.py -- AuthLaneConfig, the explicit configuration struct.

One AuthLaneConfig is passed by reference into each AuthLane engine. There
is no module-level singleton, so several independent configurations can
live side by side (and tests build throwaway ones freely).

serialize_user selects how a strategy's user value becomes the session
credential:
  ("id", "email")   -> CredentialRecord restricted to those fields
  None or ()        -> CredentialRecord wrapping the whole user object
  SomeClass         -> SomeClass(user); must satisfy records.UserRecord to
                       survive a cookie session round-trip

Warning: Starlette's session cookie is signed, not encrypted. In raw mode
(None or ()) every public attribute of the user object ends up readable
by the client, password hashes and token hashes included. List the
fields explicitly unless the user object holds nothing secret.

Layer rule: no imports from api/, web/, accounts/, or core/.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from authlane.records import CredentialRecord
from authlane.registry import StrategyRegistry


@dataclass
class AuthLaneConfig:
    """Strategy registry plus the operational settings of one deployment."""

    registry: StrategyRegistry = field(default_factory=StrategyRegistry)
    session_key: str = "authlane"
    remember_cookie: str = "authlane.token"
    failed_route: str = "/user/unauthorized"
    serialize_user: Sequence[Any] | type | None = ("id",)
    id_field: Any = "id"
    # When True, a check without a role request still consults the default
    # role strategy (with arg None) instead of bypassing role checks.
    check_default_role: bool = False

    @classmethod
    def from_settings(cls, settings: Any, registry: StrategyRegistry | None = None) -> AuthLaneConfig:
        """Build a config from an object carrying the AuthLane settings fields.

        Accepts core.config.Settings or anything with the same attribute
        names, so authlane/ never imports core/.
        """
        return cls(
            registry=registry or StrategyRegistry(),
            session_key=settings.session_key,
            remember_cookie=settings.remember_cookie,
            failed_route=settings.failed_route,
            serialize_user=tuple(settings.serialize_user),
            id_field=settings.id_field,
            check_default_role=settings.check_default_role,
        )

    @property
    def record_class(self) -> type | None:
        """The custom record class when serialize_user names one."""
        return self.serialize_user if isinstance(self.serialize_user, type) else None

    def make_record(self, user: Any) -> Any:
        """Wrap a strategy's user value into the configured record type."""
        record_class = self.record_class
        if record_class is not None:
            return record_class(user)
        return CredentialRecord(user, self.serialize_user or None, self.id_field)

    def load_record(self, data: Mapping) -> Any:
        """Rebuild a record from the dict produced by records.dump_record().

        Restricted records are restored with the dumped keys as their field
        list, so fields written after login survive the round-trip.
        """
        record_class = self.record_class
        if record_class is not None:
            from_dict = getattr(record_class, "from_dict", None)
            return from_dict(data) if callable(from_dict) else record_class(data)
        if self.serialize_user:
            return CredentialRecord(data, list(data), self.id_field)
        return CredentialRecord(dict(data), None, self.id_field)
