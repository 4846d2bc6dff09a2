"""Error taxonomy for the transfer engine."""


class TransferError(Exception):
    """Base class for errors raised by mgtransfer."""


class ConfigurationError(TransferError, ValueError):
    """
    Fatal configuration problem, reported immediately.

    Raised for a malformed finite element descriptor (component map length
    differing from the number of dofs per cell), an inconsistent boundary
    specification, an unknown renumbering strategy or invalid settings.
    """


class StructuralMismatchError(TransferError):
    """
    Two hierarchies that are compared do not share the same topology.

    Cell-wise comparison of unrelated cells is meaningless, so the
    comparison aborts instead of reporting differences.
    """
