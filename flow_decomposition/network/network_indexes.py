"""Index spaces of the flow decomposition matrices."""

import logging

from flow_decomposition.matrix import IndexMap


def select_xnecs(network):
    """Select the XNECs of network, i.e. connected branches between two countries.

    Raises
    ------
    TopologyError
        If a branch terminal has no country attribution.
    """
    xnecs = []
    for branch in network.connected_branches().index:
        country_1, country_2 = network.branch_countries(branch)
        if country_1 != country_2:
            xnecs.append(branch)
    return xnecs


class NetworkMatrixIndexes():
    """Index maps of XNECs, nodes and PSTs used to address all matrices of a run.

    Nodes, in the sense of the flow decomposition, are the connected
    injections of the main synchronous component. PSTs are connected
    phase-shifting transformers with a neutral tap.

    Parameters
    ----------
    network : :class:`~flow_decomposition.network.Network`
        Network the indexes are built from.
    xnecs : list, optional
        XNECs, selected with :func:`select_xnecs` if not provided.

    Attributes
    ----------
    xnec_index, node_index, pst_index : :class:`~flow_decomposition.matrix.IndexMap`
        Index maps of XNECs, nodes and PSTs.
    """
    def __init__(self, network, xnecs=None):
        self.logger = logging.getLogger('log.flow_decomposition.network.NetworkMatrixIndexes')
        if xnecs is None:
            xnecs = select_xnecs(network)
        self.xnec_index = IndexMap(xnecs)
        self.node_index = IndexMap(self.select_nodes(network))
        self.pst_index = IndexMap(self.select_psts(network))
        self.logger.info("Indexes of %d XNECs, %d nodes and %d PSTs",
                         len(self.xnec_index), len(self.node_index), len(self.pst_index))

    @staticmethod
    def select_nodes(network):
        main_component = network.main_component_nodes()
        injections = network.injections
        condition = injections.connected & injections.node.isin(main_component)
        return list(injections.index[condition])

    @staticmethod
    def select_psts(network):
        psts = network.psts[network.psts.neutral_tap.notna()]
        connected = network.branches.index[network.branches.connected]
        return [pst for pst in psts.index if pst in connected]
