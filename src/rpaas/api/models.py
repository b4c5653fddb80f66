"""Domain records and their store manifests.

Both records are plain dataclasses mirroring the custom resources the
reconciliation controller consumes. Only the fields this service reads or
writes are modelled.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

API_VERSION = "extensions.tsuru.io/v1alpha1"
INSTANCE_KIND = "RpaasInstance"
PLAN_KIND = "RpaasPlan"

TEAM_OWNER_ANNOTATION = "rpaas.extensions.tsuru.io/team-owner"


@dataclass(frozen=True, slots=True)
class ServiceInstance:
    name: str
    namespace: str
    plan_name: str
    team: str

    def to_manifest(self) -> dict[str, Any]:
        return {
            "apiVersion": API_VERSION,
            "kind": INSTANCE_KIND,
            "metadata": {
                "name": self.name,
                "namespace": self.namespace,
                "annotations": {TEAM_OWNER_ANNOTATION: self.team},
            },
            "spec": {"planName": self.plan_name},
        }

    @classmethod
    def from_manifest(cls, manifest: dict[str, Any]) -> ServiceInstance:
        metadata = manifest.get("metadata") or {}
        annotations = metadata.get("annotations") or {}
        spec = manifest.get("spec") or {}
        return cls(
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace", ""),
            plan_name=spec.get("planName", ""),
            team=annotations.get(TEAM_OWNER_ANNOTATION, ""),
        )


@dataclass(frozen=True, slots=True)
class Plan:
    """A catalog entry. ``description`` is exactly what the store holds."""

    name: str
    description: str = ""

    def to_manifest(self, namespace: str) -> dict[str, Any]:
        return {
            "apiVersion": API_VERSION,
            "kind": PLAN_KIND,
            "metadata": {"name": self.name, "namespace": namespace},
            "spec": {"description": self.description},
        }

    @classmethod
    def from_manifest(cls, manifest: dict[str, Any]) -> Plan:
        metadata = manifest.get("metadata") or {}
        spec = manifest.get("spec") or {}
        return cls(
            name=metadata.get("name", ""),
            description=spec.get("description") or "",
        )
