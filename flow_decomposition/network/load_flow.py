"""Load flow interface and linear load flow of the flow decomposition."""

import logging
from collections import namedtuple

import numpy as np
import pandas as pd

LoadFlowResult = namedtuple("LoadFlowResult", ["converged", "status"])

BALANCE_TYPES = ["proportional_to_generation_p_max", "proportional_to_generation_p"]

def default_load_flow_parameters():
    """Default parameters of a load flow run."""
    return {"dc": True,
            "distributed_slack": True,
            "balance_type": "proportional_to_generation_p_max"}


class LoadFlowSolver():
    """Interface of a load flow solver.

    A solver computes the load flow of a network and writes the terminal
    active power of branches (*p1*, *p2*) and injections (*p*) into the
    network tables. Non-convergence is reported through the returned
    :obj:`LoadFlowResult`, not raised.
    """
    def run(self, network, parameters=None):
        """Run load flow on network.

        Parameters
        ----------
        network : :class:`~flow_decomposition.network.Network`
            Network, terminal powers are written in place.
        parameters : dict, optional
            Keys *dc*, *distributed_slack* and *balance_type*.

        Returns
        -------
        result : LoadFlowResult
            Namedtuple (converged, status).
        """
        raise NotImplementedError


class LinearGridModel():
    """Linear representation of the network used for DC load flow and sensitivities.

    The model is initialized with the nodes and all connected branches of
    the network. Each synchronous component is balanced through one slack
    node, if none is marked in the network data, the first node of the
    component is used.

    Parameters
    ----------
    network : :class:`~flow_decomposition.network.Network`
        The network the model is derived from.

    Attributes
    ----------
    nodes : DataFrame
        Nodes of the network, with slack column set for every component.
    branches : DataFrame
        Connected branches of the network.
    components : pd.Series
        Synchronous component of each node.
    ptdf : np.ndarray
        ptdf (power transfer distribution factor) matrix :math:`(L \\times N)`.
    psdf : np.ndarray
        psdf (phase shifting distribution factor) matrix :math:`(L \\times L)` in p.u./rad.
    """
    def __init__(self, network):
        self.logger = logging.getLogger('log.flow_decomposition.network.LinearGridModel')
        self.network = network
        self.nodes = network.nodes.copy()
        self.branches = network.connected_branches()
        if (self.branches.x == 0).any():
            raise ValueError("Branches with zero reactance: "
                             + ", ".join(self.branches.index[self.branches.x == 0]))
        self.components = network.component_labels()
        self.check_slack()
        self.incidence_matrix = self.create_incidence_matrix()
        self.ptdf = self.create_ptdf_matrix()
        self.psdf = self.create_psdf_matrix()

    def check_slack(self):
        """Check slack configuration and set one slack for each synchronous component.

        For each component it is checked if a slack is defined, if not the first
        node of the component will be set as slack. Therefore, each subnetwork
        will be balanced.
        """
        for component in np.unique(self.components.values):
            condition_subnetwork = (self.components == component).values
            slacks = self.nodes.index[condition_subnetwork & self.nodes.slack.values]
            self.nodes.loc[self.nodes.index[condition_subnetwork], "slack"] = False
            if slacks.empty:
                slack = self.nodes.index[np.argmax(condition_subnetwork)]
            else:
                slack = slacks[0]
            self.nodes.loc[slack, "slack"] = True
        self.logger.debug("The network consists of %d components.",
                          len(np.unique(self.components.values)))

    def slack_of_component(self, component):
        condition = (self.components == component).values & self.nodes.slack.values
        return self.nodes.index[condition][0]

    def create_incidence_matrix(self):
        """Create incidence matrix from *branches* and *nodes* attributes."""
        incidence = np.zeros((len(self.branches), len(self.nodes)))
        rows = np.arange(len(self.branches))
        incidence[rows, self.nodes.index.get_indexer(self.branches.node_i)] = 1
        incidence[rows, self.nodes.index.get_indexer(self.branches.node_j)] = -1
        return incidence

    def create_susceptance_matrices(self):
        """Create branch (Bl) and node (Bn) susceptance matrix."""
        susceptance_diag = np.diag(1/self.branches.x.values)
        incidence = self.incidence_matrix
        branch_susceptance = np.dot(susceptance_diag, incidence)
        node_susceptance = np.dot(np.dot(incidence.T, susceptance_diag), incidence)
        return branch_susceptance, node_susceptance

    def create_ptdf_matrix(self):
        """Create ptdf matrix with one slack per synchronous component."""
        slack_idx = [self.nodes.index.get_loc(s) for s in self.nodes.index[self.nodes.slack]]
        branch_susceptance, node_susceptance = self.create_susceptance_matrices()

        list_wo_slack = [x for x in range(0, len(self.nodes.index)) if x not in slack_idx]
        node_susceptance_wo_slack = node_susceptance[np.ix_(list_wo_slack, list_wo_slack)]
        inv = np.linalg.inv(node_susceptance_wo_slack)
        # sort slack back in to get nxn
        node_susceptance_inv = np.zeros((len(self.nodes), len(self.nodes)))
        node_susceptance_inv[np.ix_(list_wo_slack, list_wo_slack)] = inv
        return np.dot(branch_susceptance, node_susceptance_inv)

    def create_psdf_matrix(self):
        """Calculate psdf (phase-shifting distribution matrix, LxLL).

        A psdf at position (l, ll) represents the change in power flow on
        branch l caused by a phase-shift of 1 [rad] on branch ll.
        """
        branch_susceptance, _ = self.create_susceptance_matrices()
        return np.diag(1/self.branches.x.values) - np.dot(self.ptdf, branch_susceptance.T)

    def psdf_per_degree(self):
        """psdf in MW/deg."""
        return self.network.base_mva * self.psdf * np.pi / 180

    def pst_angles(self):
        """Phase shift [deg] of each branch, non zero for PSTs only."""
        angles = np.zeros(len(self.branches))
        for pst in self.network.psts.index:
            if pst in self.branches.index:
                angles[self.branches.index.get_loc(pst)] = self.network.pst_current_angle(pst)
        return angles

    def injection_setpoints(self):
        """Active power [MW] each connected injection injects into the network before balancing.

        Returns
        -------
        injections : DataFrame
            Connected injections at nodes of the model.
        setpoints : pd.Series
            Injected power per injection, generators inject *target_p*, loads
            and dangling lines withdraw *p0*, converter stations follow the
            setpoint of their HVDC line.
        """
        injections = self.network.injections
        injections = injections[injections.connected & injections.node.isin(self.nodes.index)]
        setpoints = pd.Series(0.0, index=injections.index)

        generators = (injections.type == "generator").values
        setpoints[generators] = injections.target_p[generators]
        consumers = injections.type.isin(["load", "dangling_line"]).values
        setpoints[consumers] = -injections.p0[consumers]

        hvdc_lines = self.network.hvdc_lines[self.network.hvdc_lines.connected]
        for station_1, station_2, setpoint in zip(hvdc_lines.converter_station_1,
                                                  hvdc_lines.converter_station_2,
                                                  hvdc_lines.setpoint):
            if station_1 in setpoints.index:
                setpoints[station_1] -= setpoint
            if station_2 in setpoints.index:
                setpoints[station_2] += setpoint
        return injections, setpoints

    def slack_participation(self, distributed_slack=True,
                            balance_type="proportional_to_generation_p_max"):
        """Participation of generators and nodes in balancing each component.

        With distributed slack, the mismatch of each component is balanced by
        its generators in proportion to *p_max* or *target_p*, depending on
        balance_type. Otherwise, or if the participation of all generators in
        the component is zero, the slack node balances the component.

        Returns
        -------
        shares : pd.Series
            Share of each connected generator in the balancing of its component.
        node_participation : np.ndarray
            Participation of each node, sums to one per component.
        """
        if balance_type not in BALANCE_TYPES:
            raise ValueError(f"Balance type {balance_type} not in {BALANCE_TYPES}")
        injections, _ = self.injection_setpoints()
        generators = injections[injections.type == "generator"]
        if balance_type == "proportional_to_generation_p_max":
            weights = generators.p_max.fillna(0).clip(lower=0)
        else:
            weights = generators.target_p.fillna(0).abs()

        generator_components = self.components.loc[generators.node].values
        generator_nodes = self.nodes.index.get_indexer(generators.node)
        shares = pd.Series(0.0, index=generators.index)
        node_participation = np.zeros(len(self.nodes))
        for component in np.unique(self.components.values):
            in_component = generator_components == component
            total = weights[in_component].sum()
            if distributed_slack and total > 0:
                shares[in_component] = weights[in_component] / total
                np.add.at(node_participation, generator_nodes[in_component],
                          shares[in_component].values)
            else:
                slack = self.slack_of_component(component)
                node_participation[self.nodes.index.get_loc(slack)] = 1
                at_slack = in_component & (generators.node == slack).values
                if at_slack.any():
                    shares[at_slack] = 1/at_slack.sum()
        return shares, node_participation

    def distributed_ptdf(self, node_participation):
        """ptdf matrix where each component is balanced according to node_participation."""
        ptdf = self.ptdf.copy()
        for component in np.unique(self.components.values):
            condition = (self.components == component).values
            correction = np.dot(self.ptdf, node_participation * condition)
            ptdf[:, condition] -= correction[:, np.newaxis]
        return ptdf

    def solve(self, distributed_slack=True, balance_type="proportional_to_generation_p_max"):
        """Linear load flow.

        Returns
        -------
        flows : np.ndarray
            Flow [MW] on each connected branch, from node_i to node_j.
        injected : pd.Series
            Balanced injection [MW] of each connected injection.
        """
        injections, setpoints = self.injection_setpoints()
        shares, _ = self.slack_participation(distributed_slack, balance_type)
        injection_components = self.components.loc[injections.node].values
        mismatch = setpoints.groupby(injection_components).sum()

        injected = setpoints.copy()
        generator_components = self.components.loc[injections.loc[shares.index, "node"]].values
        injected.loc[shares.index] -= mismatch.reindex(generator_components).values * shares.values

        nodal_injections = (injected.groupby(injections.node.values).sum()
                            .reindex(self.nodes.index, fill_value=0.0))
        flows = (np.dot(self.ptdf, nodal_injections.values)
                 + np.dot(self.psdf_per_degree(), self.pst_angles()))
        return flows, injected


class LinearLoadFlow(LoadFlowSolver):
    """Linear load flow based on the ptdf and psdf of a :class:`LinearGridModel`.

    In DC mode both terminal powers of a branch are the linear flow with
    opposite sign. Otherwise ohmic losses :math:`r \\cdot f^2` are estimated
    from the linear flow and attributed half to each terminal, so that the
    terminal powers of resistive branches do not cancel out. This is an
    approximation of AC terminal powers, not an AC load flow.
    """
    def __init__(self):
        self.logger = logging.getLogger('log.flow_decomposition.network.LinearLoadFlow')

    def run(self, network, parameters=None):
        parameters = {**default_load_flow_parameters(), **(parameters or {})}
        mode = "DC" if parameters["dc"] else "AC"
        network.reset_flows()
        try:
            model = LinearGridModel(network)
            flows, injected = model.solve(parameters["distributed_slack"],
                                          parameters["balance_type"])
        except np.linalg.LinAlgError as error:
            self.logger.debug("Linear %s load flow failed: %s", mode, error)
            return LoadFlowResult(False, f"Singular susceptance matrix: {error}")

        if np.isnan(flows).any() or injected.isna().any():
            return LoadFlowResult(False, "Load flow results contain NaN")

        if parameters["dc"]:
            losses = np.zeros(len(flows))
        else:
            losses = model.branches.r.values * np.square(flows) / network.base_mva

        network.branches.loc[model.branches.index, "p1"] = flows + losses/2
        network.branches.loc[model.branches.index, "p2"] = -flows + losses/2
        network.injections.loc[injected.index, "p"] = -injected.values
        self.logger.debug("Linear %s load flow converged, total losses %.2f MW.", mode, losses.sum())
        return LoadFlowResult(True, "converged")
