"""Exception types raised by the ocean simulation package."""


class OceanSimulationError(Exception):
    """Base class for every error raised by ocean_utilities."""


class ConfigurationError(OceanSimulationError, ValueError):
    """Invalid simulation or layer configuration, reported at initialization."""

    def __init__(self, problems):
        if isinstance(problems, str):
            problems = [problems]
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))


class ComputeBackendError(OceanSimulationError):
    """Missing back-end, unbound kernel or unknown buffer."""


class ReadbackError(OceanSimulationError):
    """An asynchronous buffer readback did not complete successfully."""
