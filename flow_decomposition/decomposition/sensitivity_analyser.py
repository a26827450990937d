"""Batched sensitivity analysis, assembling PTDF and PSDF matrices."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor

import flow_decomposition.tools as tools
from flow_decomposition.matrix import IndexedSparseMatrix
from flow_decomposition.network.sensitivity import SensitivityFactor


class SensitivityAnalyser():
    """Request sensitivities of the XNEC flows from a sensitivity engine.

    Variables are requested in batches of at most *batch_size* variables,
    each batch contains one factor for every (variable, XNEC) pair. Batches
    are computed sequentially or, with more than one thread, concurrently on
    a thread pool. All results are written into one matrix, which is guarded
    by a lock.

    Each sensitivity is oriented to the reference flow of its XNEC: if the
    reference flow is negative the sign is flipped. Values with an absolute
    value of at most *epsilon* are dropped.

    Parameters
    ----------
    engine : :class:`~flow_decomposition.network.SensitivityEngine`
        The sensitivity engine.
    network : :class:`~flow_decomposition.network.Network`
        Network, which is not modified.
    xnec_index : :class:`~flow_decomposition.matrix.IndexMap`
        XNECs, i.e. the sensitivity functions and matrix rows.
    options : dict, optional
        Options of the flow decomposition, *sensitivity* and *load_flow*
        options are used.
    """
    def __init__(self, engine, network, xnec_index, options=None):
        self.logger = logging.getLogger('log.flow_decomposition.decomposition.SensitivityAnalyser')
        options = options or tools.default_options()
        self.engine = engine
        self.network = network
        self.xnec_index = xnec_index
        self.epsilon = options["sensitivity"]["epsilon"]
        self.batch_size = options["sensitivity"]["batch_size"]
        self.threads = options["sensitivity"]["threads"]
        self.parameters = {"dc": True,
                           "distributed_slack": options["load_flow"]["distributed_slack"],
                           "balance_type": options["load_flow"]["balance_type"]}
        self._lock = threading.Lock()

    def run(self, variable_index, variable_type):
        """Return the sensitivity matrix XNECs times variables.

        Parameters
        ----------
        variable_index : :class:`~flow_decomposition.matrix.IndexMap`
            Variables, i.e. nodes for the PTDF or PSTs for the PSDF.
        variable_type : str
            *injection* or *pst*.

        Returns
        -------
        sensitivities : :class:`~flow_decomposition.matrix.IndexedSparseMatrix`
            Reference oriented sensitivities in assembly form.
        """
        sensitivities = IndexedSparseMatrix(self.xnec_index, variable_index, self.epsilon)
        if len(self.xnec_index) == 0 or len(variable_index) == 0:
            return sensitivities

        variables = list(variable_index)
        batches = [variables[batch.start:batch.stop]
                   for batch in tools.split_length_in_ranges(self.batch_size, len(variables))]
        self.logger.info("Computing %s sensitivities of %d XNECs in %d batches.",
                         variable_type, len(self.xnec_index), len(batches))

        if self.threads > 1 and len(batches) > 1:
            with ThreadPoolExecutor(max_workers=self.threads) as executor:
                futures = [executor.submit(self._run_batch, sensitivities, batch, variable_type)
                           for batch in batches]
                for future in futures:
                    future.result()
        else:
            for batch in batches:
                self._run_batch(sensitivities, batch, variable_type)
        return sensitivities

    def _run_batch(self, sensitivities, variables, variable_type):
        factors = [SensitivityFactor(xnec, variable, variable_type)
                   for variable in variables for xnec in self.xnec_index]
        values = self.engine.analyze(self.network, factors, self.parameters)
        with self._lock:
            for value in values:
                factor = factors[value.factor_index]
                sensitivity = -value.value if value.function_reference < 0 else value.value
                sensitivities.add_item(factor.function_id, factor.variable_id, sensitivity)
