"""Domain errors raised by services; routes translate them to HTTP responses."""


class RetreatNotJoinable(Exception):
    """Unknown code, inactive retreat, or retreat past its end time."""


class ParticipantNotFound(Exception):
    """Sign-in requested for a phone with no prior participant in the retreat."""


class JoinConflict(Exception):
    """The participant upsert lost a uniqueness race twice."""


class LocationSharingDisabled(Exception):
    pass


class InvalidAvatar(Exception):
    pass
