"""Rescaling of decomposed flows to the AC reference flow."""

import logging

from flow_decomposition.exceptions import DegenerateRescaleError


class DecomposedFlowRescaler():
    """Rescale decomposed flows so that their components sum up to the AC reference flow.

    The difference between the AC reference flow and the reference oriented
    total of the components is distributed proportionally onto the components
    which flow in reference direction. Relieving components, i.e. negative
    components, remain unchanged. Flows whose components already sum up to the
    AC reference flow, e.g. XNECs without flow, are returned unchanged.

    Parameters
    ----------
    epsilon : float, optional
        Flows deviating at most epsilon from the AC reference flow are not
        rescaled. If the absolute reference oriented total of the non
        relieving components is at most epsilon, rescaling is undefined.
    """
    def __init__(self, epsilon=1e-9):
        self.logger = logging.getLogger('log.flow_decomposition.decomposition.DecomposedFlowRescaler')
        self.epsilon = epsilon

    def rescale(self, decomposed_flow, xnec=None):
        """Return the rescaled copy of decomposed_flow.

        Raises
        ------
        DegenerateRescaleError
            If no component flows in reference direction.
        """
        difference = decomposed_flow.ac_reference_flow - decomposed_flow.reference_oriented_total_flow
        if abs(difference) <= self.epsilon:
            return decomposed_flow

        no_relieving_flow = decomposed_flow.replace_relieving_flows()
        no_relieving_total = no_relieving_flow.reference_oriented_total_flow
        if abs(no_relieving_total) <= self.epsilon:
            raise DegenerateRescaleError(
                f"Cannot rescale decomposed flow{' of ' + xnec if xnec else ''}, "
                f"no component flows in reference direction: {decomposed_flow}")

        return decomposed_flow.add(no_relieving_flow.scale(difference / no_relieving_total))

    def rescale_all(self, decomposed_flows):
        """Rescale a dict xnec -> DecomposedFlow."""
        rescaled_flows = {xnec: self.rescale(flow, xnec) for xnec, flow in decomposed_flows.items()}
        self.logger.info("Rescaled %d decomposed flows.", len(rescaled_flows))
        return rescaled_flows
