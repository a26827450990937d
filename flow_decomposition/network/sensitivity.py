"""Sensitivity engine interface and linear sensitivity engine."""

import logging
from collections import namedtuple

from flow_decomposition.network.load_flow import LinearGridModel, default_load_flow_parameters

SensitivityFactor = namedtuple("SensitivityFactor", ["function_id", "variable_id", "variable_type"])
SensitivityValue = namedtuple("SensitivityValue", ["factor_index", "value", "function_reference"])

VARIABLE_TYPES = ["injection", "pst"]


class SensitivityEngine():
    """Interface of a sensitivity engine.

    For each :obj:`SensitivityFactor` the engine returns the sensitivity of
    the active power flow on the function branch (at terminal 1) with respect
    to the variable, i.e. an injection increase [MW/MW] or a PST phase shift
    [MW/deg], together with the reference flow of the function branch.
    """
    def analyze(self, network, factors, parameters=None):
        """Run the sensitivity analysis.

        Parameters
        ----------
        network : :class:`~flow_decomposition.network.Network`
            Network, not modified.
        factors : list of SensitivityFactor
            (function_id, variable_id, variable_type) tuples.
        parameters : dict, optional
            Load flow parameters, keys *distributed_slack* and *balance_type*.

        Returns
        -------
        values : list of SensitivityValue
            (factor_index, value, function_reference) tuples.
        """
        raise NotImplementedError


class LinearSensitivityEngine(SensitivityEngine):
    """Sensitivities from the ptdf and psdf of a :class:`~flow_decomposition.network.LinearGridModel`.

    Injection sensitivities use the ptdf with distributed slack, balanced like
    the linear load flow. The function reference is the DC flow on the
    function branch.
    """
    def __init__(self):
        self.logger = logging.getLogger('log.flow_decomposition.network.LinearSensitivityEngine')

    def analyze(self, network, factors, parameters=None):
        parameters = {**default_load_flow_parameters(), **(parameters or {})}
        model = LinearGridModel(network)
        _, node_participation = model.slack_participation(parameters["distributed_slack"],
                                                          parameters["balance_type"])
        ptdf = model.distributed_ptdf(node_participation)
        psdf = model.psdf_per_degree()
        reference_flows, _ = model.solve(parameters["distributed_slack"], parameters["balance_type"])

        values = []
        for factor_index, factor in enumerate(factors):
            row = model.branches.index.get_loc(factor.function_id)
            if factor.variable_type == "injection":
                node = network.injections.at[factor.variable_id, "node"]
                value = ptdf[row, model.nodes.index.get_loc(node)]
            elif factor.variable_type == "pst":
                value = psdf[row, model.branches.index.get_loc(factor.variable_id)]
            else:
                raise ValueError(f"Variable type {factor.variable_type} not in {VARIABLE_TYPES}")
            values.append(SensitivityValue(factor_index, float(value), float(reference_flows[row])))

        self.logger.debug("Computed %d sensitivities.", len(values))
        return values
