"""
Parcel Status Enumeration and transition table.
"""

import enum
from typing import Optional


class ParcelStatus(str, enum.Enum):
    """
    Parcel status enumeration.
    
    Status flow:
        REGISTERED → SENT → DELIVERED
        No step may be skipped or reversed.
    """
    REGISTERED = "registered"  # Accepted, not yet handed to a carrier
    SENT = "sent"  # In transit
    DELIVERED = "delivered"  # Final state


# current status -> the only status it may move to
NEXT_STATUS = {
    ParcelStatus.REGISTERED: ParcelStatus.SENT,
    ParcelStatus.SENT: ParcelStatus.DELIVERED,
}

# target status -> the only status it may be reached from
PREVIOUS_STATUS = {target: current for current, target in NEXT_STATUS.items()}


def next_status(current: ParcelStatus) -> Optional[ParcelStatus]:
    """Return the status following `current`, or None for a final status."""
    return NEXT_STATUS.get(ParcelStatus(current))
