"""Error conditions raised while deriving the prayer schedule."""


class PrayerTimeError(Exception):
    """Base class for prayerbar errors."""


class ComputationUnavailable(PrayerTimeError):
    """The time provider returned no result for the location and date."""


class LocationUnavailable(PrayerTimeError):
    """No coordinates are known yet."""


class ProviderTimeout(PrayerTimeError):
    """The time provider did not answer in time."""


class PermissionDenied(PrayerTimeError):
    """A collaborator (location, notifications) was refused access."""
