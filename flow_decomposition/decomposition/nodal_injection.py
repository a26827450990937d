"""Nodal injection matrix of the flow decomposition."""

import logging

import numpy as np

import flow_decomposition.tools as tools
from flow_decomposition.exceptions import NodalDataError
from flow_decomposition.matrix import IndexedSparseMatrix


class NodalInjectionAssembler():
    """Assemble the nodal injection matrix.

    Each row of the matrix is a node, i.e. an eligible injection. The column
    *Allocated Flow* holds the injection that results from distributing the
    net position of the node's zone with the GLSK. The column *Loop Flow from
    <zone>* of the node's zone holds the difference between the DC reference
    injection and the allocated injection. Therefore the row sum of each node
    equals its DC reference injection.

    Parameters
    ----------
    network : :class:`~flow_decomposition.network.Network`
        Network in the state of the DC reference load flow.
    node_index : :class:`~flow_decomposition.matrix.IndexMap`
        Index of the nodes.
    zones : list
        Zones of the network, each zone has one loop flow column.
    """
    def __init__(self, network, node_index, zones):
        self.logger = logging.getLogger('log.flow_decomposition.decomposition.NodalInjectionAssembler')
        self.network = network
        self.node_index = node_index
        self.zones = list(zones)

    @property
    def columns(self):
        return [tools.ALLOCATED_COLUMN_NAME] + [tools.loop_flow_column(zone) for zone in self.zones]

    def allocated_injections(self, glsks, net_positions):
        """Injection of each node resulting from GLSK times net position of its zone."""
        allocated_injections = {}
        for node in self.node_index:
            zone = self.network.injection_country(node)
            allocated_injections[node] = glsks.get(zone, {}).get(node, 0.0) * net_positions.get(zone, 0.0)
        return allocated_injections

    def dc_reference_injections(self):
        """Injection of each node after the DC load flow, i.e. the negative terminal power.

        Raises
        ------
        NodalDataError
            If the terminal power of a node is NaN.
        """
        dc_injections = {}
        for node in self.node_index:
            power = self.network.injections.at[node, "p"]
            if np.isnan(power):
                raise NodalDataError(f"Reference nodal injection cannot be a NaN for node {node}")
            dc_injections[node] = -power
        return dc_injections

    def run(self, glsks, net_positions, dc_injections=None):
        """Return the nodal injection matrix.

        Parameters
        ----------
        glsks : dict
            zone -> {generator: weight}.
        net_positions : dict
            zone -> net position.
        dc_injections : dict, optional
            DC reference injections, read from the network if not provided.

        Returns
        -------
        nodal_injections : :class:`~flow_decomposition.matrix.IndexedSparseMatrix`
            Nodes times (allocated and one loop flow column per zone).
        """
        if dc_injections is None:
            dc_injections = self.dc_reference_injections()
        allocated_injections = self.allocated_injections(glsks, net_positions)

        nodal_injections = IndexedSparseMatrix(self.node_index, self.columns)
        for node in self.node_index:
            zone = self.network.injection_country(node)
            nodal_injections.add_item(node, tools.ALLOCATED_COLUMN_NAME, allocated_injections[node])
            nodal_injections.add_item(node, tools.loop_flow_column(zone),
                                      dc_injections[node] - allocated_injections[node])
        self.logger.debug("Nodal injection matrix with %d non zero values.", nodal_injections.nnz)
        return nodal_injections
