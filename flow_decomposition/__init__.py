"""
Flow Decomposition of cross-border network elements.

The flow decomposition attributes the power flow on cross-border network
elements (XNECs) to its causes: the allocated flow resulting from the
exchange between zones, one loop flow per zone and the flow induced by
phase-shifting transformers. After rescaling, the components sum up to the
AC reference flow of each XNEC.

Usage
-----
A network is read from an excel workbook, a zip archive or a folder of csv
files, or built with the methods of
:class:`~flow_decomposition.network.Network`::

    from flow_decomposition import FlowDecompositionComputer
    from flow_decomposition.network import load_network

    network = load_network("data_input/two_countries")
    computer = FlowDecompositionComputer(options={"rescale": {"enable": True}})
    results = computer.run(network)
    results.get_decomposed_flows()
"""

from flow_decomposition.exceptions import (FlowDecompositionError, TopologyError, NodalDataError,
                                           DegenerateRescaleError, SolverDivergence)
from flow_decomposition.matrix import IndexMap, IndexedSparseMatrix
from flow_decomposition.network import Network, load_network, save_network
from flow_decomposition.decomposition import DecomposedFlow, FlowDecompositionResults
from flow_decomposition.flow_decomposition import FlowDecompositionComputer
