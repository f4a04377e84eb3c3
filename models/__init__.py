# Import every model so string-based relationships resolve on first use.
from models.Retreat import Retreat
from models.RetreatParticipant import RetreatParticipant
from models.ParticipantLocation import ParticipantLocation
from models.RetreatLeaderPhoneAllowlist import RetreatLeaderPhoneAllowlist
from models.RetreatMessage import RetreatMessage
from models.RetreatWaypoint import RetreatWaypoint
from models.RetreatCodeAlias import RetreatCodeAlias

__all__ = [
    "Retreat",
    "RetreatParticipant",
    "ParticipantLocation",
    "RetreatLeaderPhoneAllowlist",
    "RetreatMessage",
    "RetreatWaypoint",
    "RetreatCodeAlias",
]
