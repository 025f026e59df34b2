"""
Verification policy options.
"""

from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from shared.config import GateConfig

KeyMaterial = Union[str, bytes, Dict[str, Any]]


@dataclass(frozen=True)
class VerifyOptions:
    """Policy for one gate or route.

    ``allow_no_token`` and ``load_user_info`` drive the orchestrator; the
    remaining fields are passed through to the token verifier.
    """

    allow_no_token: bool = False
    load_user_info: bool = False
    issuer: Optional[str] = None
    clients: Optional[Tuple[str, ...]] = None
    key: Optional[KeyMaterial] = None
    scope: Optional[str] = None

    def merge(self, overrides: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> "VerifyOptions":
        """Return a copy with ``overrides`` applied; unknown names are rejected."""
        changes = dict(overrides or {}, **kwargs)
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise TypeError(f"Unknown verify options: {', '.join(sorted(unknown))}")
        if isinstance(changes.get("clients"), (list, set)):
            changes["clients"] = tuple(changes["clients"])
        elif isinstance(changes.get("clients"), str):
            changes["clients"] = (changes["clients"],)
        return replace(self, **changes)

    @property
    def required_scopes(self) -> Tuple[str, ...]:
        if not self.scope:
            return ()
        return tuple(self.scope.split())

    @classmethod
    def from_config(cls, config: GateConfig) -> "VerifyOptions":
        return cls(
            allow_no_token=config.allow_no_token,
            load_user_info=config.load_user_info,
            issuer=config.issuer,
            clients=tuple(config.client_ids) or None,
            scope=config.scope,
        )
