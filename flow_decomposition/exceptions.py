"""Errors raised by the flow decomposition.

All errors derive from :class:`FlowDecompositionError`. The orchestrator
:class:`~flow_decomposition.FlowDecompositionComputer` sets the attribute *stage*
to the name of the pipeline stage in which the error occurred, so that callers can
identify where a run was aborted.
"""


class FlowDecompositionError(Exception):
    """Base error of the flow decomposition.

    Parameters
    ----------
    message : str
        Error message.
    stage : str, optional
        Name of the pipeline stage that raised the error.
    """
    def __init__(self, message, stage=None):
        super().__init__(message)
        self.stage = stage

    def __str__(self):
        message = super().__str__()
        if self.stage:
            return f"[{self.stage}] {message}"
        return message


class TopologyError(FlowDecompositionError):
    """Voltage level without substation or substation without country."""


class NodalDataError(FlowDecompositionError):
    """Reference nodal injection is not a number, i.e. the network is not solved."""


class DegenerateRescaleError(FlowDecompositionError):
    """Rescaling is undefined, as no component flows in the reference direction."""


class SolverDivergence(FlowDecompositionError):
    """The load flow solver reported non-convergence."""
