"""
Parcel database model.

One row per tracked shipment.
"""

from sqlalchemy import Column, Integer, Text, Enum
from tracker.app.db.session import Base
from tracker.app.db.types import UTCDateTime
from tracker.app.models.parcel_enums import ParcelStatus


class Parcel(Base):
    """
    Parcel model for the tracker.
    
    `number` is assigned by the database on insert and never reused.
    `client` and `created_at` never change after insert; `address` and
    `status` change only through ParcelStore.
    """
    __tablename__ = "parcel"
    __table_args__ = {"sqlite_autoincrement": True}  # never reuse numbers of deleted rows
    
    number = Column(Integer, primary_key=True, autoincrement=True)
    
    # Ownership
    client = Column(Integer, nullable=False, index=True)
    
    # Status (stored by value: "registered", "sent", "delivered")
    status = Column(
        Enum(
            ParcelStatus,
            name="parcel_status",
            native_enum=False,
            length=16,
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        default=ParcelStatus.REGISTERED,
        nullable=False,
    )
    
    # Delivery information
    address = Column(Text, nullable=False)
    
    # Timestamps
    created_at = Column(UTCDateTime, nullable=False)
    
    def __repr__(self):
        return f"<Parcel(number={self.number}, client={self.client}, status='{self.status.value}')>"
