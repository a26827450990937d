"""Flow induced by phase-shifting transformers."""

import logging

import numpy as np

import flow_decomposition.tools as tools
from flow_decomposition.matrix import IndexedSparseMatrix


class PstFlowComputer():
    """Compute the PST flow on each XNEC.

    The PST flow is the PSDF times the deviation of the current phase shift
    of each PST from its phase shift at neutral tap [deg].
    """
    def __init__(self):
        self.logger = logging.getLogger('log.flow_decomposition.decomposition.PstFlowComputer')

    def delta_tap_matrix(self, network, pst_index):
        """Phase shift deviation from neutral tap of each PST, as column *PST Flow*."""
        delta_taps = IndexedSparseMatrix(pst_index, [tools.PST_COLUMN_NAME])
        for pst in pst_index:
            neutral_angle = network.pst_neutral_angle(pst)
            if np.isnan(neutral_angle):
                delta_tap = 0.0
            else:
                delta_tap = network.pst_current_angle(pst) - neutral_angle
            delta_taps.add_item(pst, tools.PST_COLUMN_NAME, delta_tap)
        return delta_taps

    def run(self, network, pst_index, psdf):
        """Return the PST flow matrix, XNECs times *PST Flow*.

        Parameters
        ----------
        network : :class:`~flow_decomposition.network.Network`
            Network with the current tap positions.
        pst_index : :class:`~flow_decomposition.matrix.IndexMap`
            Index of the PSTs.
        psdf : :class:`~flow_decomposition.matrix.IndexedSparseMatrix`
            PSDF matrix, XNECs times PSTs.
        """
        delta_taps = self.delta_tap_matrix(network, pst_index)
        self.logger.debug("%d PSTs deviate from neutral tap.", delta_taps.nnz)
        return IndexedSparseMatrix.multiply(psdf, delta_taps)
