class NeighborDetectionError(ValueError):
    """Base class for every validation failure raised by this package."""


class InvalidParticle(NeighborDetectionError):
    pass


class InvalidDomain(NeighborDetectionError):
    pass


class InvalidConfiguration(NeighborDetectionError):
    pass
