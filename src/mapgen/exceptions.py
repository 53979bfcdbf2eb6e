"""Custom exceptions for map generation."""


class MapGenerationError(Exception):
    """Base exception for map generation failures."""

    pass


class SettingsValidationError(MapGenerationError):
    """Raised when generator settings are out of range or incompatible."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class GenerationInfeasibleError(MapGenerationError):
    """Raised when the settings cannot produce a valid map for this seed."""

    pass


class PathTilingError(GenerationInfeasibleError):
    """Raised when no template sequence fits a path."""

    pass


class NoPlayableRegionError(GenerationInfeasibleError):
    """Raised when the map has no usable playable region."""

    pass


class SymmetryPolicyError(MapGenerationError):
    """Raised when symmetry enforcement meets an ambiguous terrain pairing."""

    pass
