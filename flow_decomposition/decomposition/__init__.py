"""Stages of the flow decomposition.

Each stage is a small class with a *run* method, combined in
:class:`~flow_decomposition.FlowDecompositionComputer`.
"""

from flow_decomposition.decomposition.glsk import GlskComputer
from flow_decomposition.decomposition.net_position import NetPositionComputer
from flow_decomposition.decomposition.losses import LossesCompensator
from flow_decomposition.decomposition.nodal_injection import NodalInjectionAssembler
from flow_decomposition.decomposition.sensitivity_analyser import SensitivityAnalyser
from flow_decomposition.decomposition.pst_flow import PstFlowComputer
from flow_decomposition.decomposition.decomposed_flow import DecomposedFlow
from flow_decomposition.decomposition.rescaler import DecomposedFlowRescaler
from flow_decomposition.decomposition.results import FlowDecompositionResults
