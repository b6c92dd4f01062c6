# Overview: Point-in-time device -> branch mapping used by the daily aggregation.

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from ..models import Unit

UNASSIGNED_BRANCH_ID = "unassigned"
UNKNOWN_BRANCH_ID = "unknown"


@dataclass(frozen=True)
class Resolved:
    """Device belongs to a real branch."""
    branch_id: str

    is_sentinel = False

    @property
    def bucket_id(self) -> str:
        return self.branch_id


@dataclass(frozen=True)
class Unassigned:
    """Unit exists but has no branch yet."""

    is_sentinel = True
    bucket_id = UNASSIGNED_BRANCH_ID


@dataclass(frozen=True)
class Unknown:
    """No unit record for this device id."""

    is_sentinel = True
    bucket_id = UNKNOWN_BRANCH_ID


UNASSIGNED = Unassigned()
UNKNOWN = Unknown()

BranchResolution = Union[Resolved, Unassigned, Unknown]


class DeviceBranchMap:
    """
    Immutable snapshot of unit assignments.

    Absence is data, not an error: resolve() never raises, so one
    misconfigured device cannot abort a run for every other branch.
    """

    def __init__(self, assignments: dict[str, str | None]):
        self._resolutions: dict[str, BranchResolution] = {}
        for device_id, branch_id in assignments.items():
            if branch_id and branch_id.strip():
                self._resolutions[device_id] = Resolved(branch_id.strip())
            else:
                self._resolutions[device_id] = UNASSIGNED

    def __len__(self) -> int:
        return len(self._resolutions)

    def __contains__(self, device_id: object) -> bool:
        return device_id in self._resolutions

    def resolve(self, device_id: str | None) -> BranchResolution:
        if device_id is None:
            return UNKNOWN
        return self._resolutions.get(device_id, UNKNOWN)

    def as_bucket_ids(self) -> dict[str, str]:
        """Flat deviceId -> stored branch id view, sentinels included."""
        return {device_id: res.bucket_id for device_id, res in self._resolutions.items()}


def build_device_branch_map(session) -> DeviceBranchMap:
    rows = session.query(Unit.device_id, Unit.branch_id).all()
    return DeviceBranchMap({row.device_id: row.branch_id for row in rows})
