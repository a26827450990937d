"""The network side of the flow decomposition.

The flow decomposition consumes the network, a load flow solver and a
sensitivity engine through narrow interfaces:

    - :class:`~flow_decomposition.network.Network`: tables of the network,
      country attribution, PST taps and terminal powers.
    - :class:`~flow_decomposition.network.LoadFlowSolver`: writes terminal
      powers into the network and reports convergence.
    - :class:`~flow_decomposition.network.SensitivityEngine`: sensitivities
      of branch flows with respect to injections and PST phase shifts.

:class:`~flow_decomposition.network.LinearLoadFlow` and
:class:`~flow_decomposition.network.LinearSensitivityEngine` implement the
interfaces based on a linear grid model.
"""

from flow_decomposition.network.network import Network, load_network_structure
from flow_decomposition.network.worker import NetworkWorker, load_network, save_network
from flow_decomposition.network.load_flow import (LoadFlowSolver, LoadFlowResult, LinearLoadFlow,
                                                  LinearGridModel, default_load_flow_parameters)
from flow_decomposition.network.sensitivity import (SensitivityEngine, SensitivityFactor,
                                                    SensitivityValue, LinearSensitivityEngine)
from flow_decomposition.network.network_indexes import NetworkMatrixIndexes, select_xnecs
