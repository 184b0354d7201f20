"""Typed views over Keycloak JSON representations used by the back-office."""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict

from .attributes import Attributes


@dataclass(frozen=True)
class Realm:
    id: str
    name: str

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Realm":
        return cls(id=data.get("id") or data.get("realm", ""), name=data.get("realm", ""))


@dataclass(frozen=True)
class Group:
    id: str
    name: str
    path: str = ""
    attributes: Attributes = field(default_factory=Attributes, compare=False, hash=False)

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Group":
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            path=data.get("path", ""),
            attributes=Attributes.from_json(data.get("attributes")),
        )


@dataclass(frozen=True)
class Client:
    """Keycloak client; ``id`` is the internal UUID, ``client_id`` the public name."""

    id: str
    client_id: str

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Client":
        return cls(id=data.get("id", ""), client_id=data.get("clientId", ""))


@dataclass(frozen=True)
class Role:
    id: str
    name: str

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Role":
        return cls(id=data.get("id", ""), name=data.get("name", ""))

    def to_json(self) -> Dict[str, str]:
        return {"id": self.id, "name": self.name}
