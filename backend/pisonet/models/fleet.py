from __future__ import annotations

from ..extensions import db
from pisonet.time_utils import to_utc_z


class Branch(db.Model):
    """
    Physical location owning one or more coin units.

    Branch ids are client-chosen strings, matching the ids used by the
    device provisioning UI.
    """
    __tablename__ = "branches"

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(120), nullable=True)
    location = db.Column(db.String(255), nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Branch id={self.id!r} location={self.location!r}>"

    @property
    def display_name(self) -> str:
        return self.location or self.name or f"Branch {self.id}"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "location": self.location,
            "created_at": to_utc_z(self.created_at),
        }


class Unit(db.Model):
    """
    Coin-operated PC terminal, identified by its device id.

    branch_id is null while the unit is unassigned. Provisioning happens
    outside this service; aggregation and settlement only read units.
    """
    __tablename__ = "units"

    device_id = db.Column(db.String(64), primary_key=True)
    branch_id = db.Column(db.String(64), db.ForeignKey("branches.id"), nullable=True, index=True)
    alias = db.Column(db.String(120), nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    branch = db.relationship("Branch", backref=db.backref("units", lazy=True))

    def __repr__(self) -> str:
        return f"<Unit device_id={self.device_id!r} branch_id={self.branch_id!r}>"

    def to_dict(self) -> dict:
        return {
            "device_id": self.device_id,
            "branch_id": self.branch_id,
            "alias": self.alias,
            "created_at": to_utc_z(self.created_at),
        }
