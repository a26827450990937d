"""Results of the flow decomposition."""

import copy
import datetime
import logging
from pathlib import Path

import pandas as pd

import flow_decomposition.tools as tools
from flow_decomposition.decomposition.decomposed_flow import DecomposedFlow


class FlowDecompositionResults():
    """Results of a flow decomposition run.

    The decomposed flows are always stored. Intermediate results, GLSK, net
    positions, nodal injections, DC nodal injections, PTDF and PSDF, are only
    stored if *save_intermediate* is set, otherwise their getters return None.

    Maps derived from the stored matrices are cached per request, i.e. the
    method and its arguments. The cache is invalidated with every write to
    the results.

    Parameters
    ----------
    save_intermediate : bool, optional
        Store intermediate results.
    network_id : str, optional
        Name of the decomposed network, part of the results id.

    Attributes
    ----------
    id : str
        Identifier of the results, used as file name in :meth:`export_csv`.
    stage_durations : dict
        Duration [s] of each stage of the run.
    """
    def __init__(self, save_intermediate=False, network_id="network"):
        self.logger = logging.getLogger('log.flow_decomposition.decomposition.FlowDecompositionResults')
        self.save_intermediate = save_intermediate
        self.network_id = network_id
        self.id = "Flow_Decomposition_Results_of_{}_on_network_{}".format(
            datetime.datetime.now().strftime("%Y-%m-%d_%H-%M-%S"), network_id)
        self.stage_durations = {}

        self._allocated_and_loop_flows = None
        self._pst_flows = None
        self._ac_reference_flows = {}
        self._dc_reference_flows = {}
        self._rescaled_flows = None
        self._glsks = None
        self._net_positions = None
        self._nodal_injections = None
        self._dc_nodal_injections = None
        self._ptdf = None
        self._psdf = None
        self._cached_results = {}

    def _invalidate_cache(self):
        self._cached_results = {}

    def _cached(self, key, compute):
        if key not in self._cached_results:
            self._cached_results[key] = compute()
        return self._cached_results[key]

    def _save_intermediate(self, attribute, value):
        if self.save_intermediate:
            setattr(self, attribute, value)
            self._invalidate_cache()

    def save_allocated_and_loop_flows(self, allocated_and_loop_flows):
        self._allocated_and_loop_flows = allocated_and_loop_flows
        self._invalidate_cache()

    def save_pst_flows(self, pst_flows):
        self._pst_flows = pst_flows
        self._invalidate_cache()

    def save_ac_reference_flows(self, ac_reference_flows):
        self._ac_reference_flows = dict(ac_reference_flows)
        self._invalidate_cache()

    def save_dc_reference_flows(self, dc_reference_flows):
        self._dc_reference_flows = dict(dc_reference_flows)
        self._invalidate_cache()

    def save_rescaled_flows(self, rescaled_flows):
        self._rescaled_flows = dict(rescaled_flows)
        self._invalidate_cache()

    def save_glsks(self, glsks):
        self._save_intermediate("_glsks", copy.deepcopy(glsks))

    def save_net_positions(self, net_positions):
        self._save_intermediate("_net_positions", dict(net_positions))

    def save_nodal_injections(self, nodal_injections):
        self._save_intermediate("_nodal_injections", nodal_injections)

    def save_dc_nodal_injections(self, dc_nodal_injections):
        self._save_intermediate("_dc_nodal_injections", dict(dc_nodal_injections))

    def save_ptdf(self, ptdf):
        self._save_intermediate("_ptdf", ptdf)

    def save_psdf(self, psdf):
        self._save_intermediate("_psdf", psdf)

    @property
    def xnecs(self):
        if self._allocated_and_loop_flows is None:
            return []
        return list(self._allocated_and_loop_flows.row_index)

    @property
    def is_rescaled(self):
        return self._rescaled_flows is not None

    def get_decomposed_flows(self, fill_zeros=False, rescaled=None):
        """Decomposed flow of each XNEC.

        Parameters
        ----------
        fill_zeros : bool, optional
            Include components which are zero.
        rescaled : bool, optional
            Return the rescaled flows, defaults to True if the flows were
            rescaled in the run.

        Returns
        -------
        decomposed_flows : dict
            xnec -> :class:`~flow_decomposition.decomposition.DecomposedFlow`.
        """
        if rescaled is None:
            rescaled = self.is_rescaled
        if rescaled and not self.is_rescaled:
            raise ValueError("Decomposed flows have not been rescaled.")
        return self._cached(("decomposed_flows", fill_zeros, rescaled),
                            lambda: self._decomposed_flows(fill_zeros, rescaled))

    def _decomposed_flows(self, fill_zeros, rescaled):
        if self._allocated_and_loop_flows is None:
            return {}
        components = self._allocated_and_loop_flows.to_map(fill_zeros)
        component_names = list(self._allocated_and_loop_flows.col_index)
        prefix = tools.loop_flow_column("")
        zones = [name[len(prefix):] for name in component_names if name.startswith(prefix)]
        if self._pst_flows is not None:
            for xnec, pst_flow in self._pst_flows.to_map(fill_zeros).items():
                components[xnec].update(pst_flow)
            component_names += list(self._pst_flows.col_index)

        if rescaled:
            decomposed_flows = dict(self._rescaled_flows)
        else:
            decomposed_flows = {xnec: DecomposedFlow(values,
                                                     self._ac_reference_flows.get(xnec, float("nan")),
                                                     self._dc_reference_flows.get(xnec, float("nan")),
                                                     zones)
                                for xnec, values in components.items()}
        if fill_zeros:
            decomposed_flows = {xnec: flow.fill_components(component_names)
                                for xnec, flow in decomposed_flows.items()}
        return decomposed_flows

    def get_glsks(self):
        return self._glsks

    def get_net_positions(self):
        return self._net_positions

    def get_dc_nodal_injections(self):
        return self._dc_nodal_injections

    def _get_map(self, name, fill_zeros):
        matrix = getattr(self, "_" + name)
        if matrix is None:
            return None
        return self._cached((name, fill_zeros), lambda: matrix.to_map(fill_zeros))

    def get_ptdf_map(self, fill_zeros=False):
        return self._get_map("ptdf", fill_zeros)

    def get_psdf_map(self, fill_zeros=False):
        return self._get_map("psdf", fill_zeros)

    def get_nodal_injections_map(self, fill_zeros=False):
        return self._get_map("nodal_injections", fill_zeros)

    def to_dataframe(self, fill_zeros=True, rescaled=None):
        """Decomposed flows as DataFrame, XNECs as index, components and reference flows as columns."""
        decomposed_flows = self.get_decomposed_flows(fill_zeros, rescaled)
        return pd.DataFrame.from_dict({xnec: flow.to_dict() for xnec, flow in decomposed_flows.items()},
                                      orient="index").fillna(0.0)

    def export_csv(self, folder, rescaled=None):
        """Write the decomposed flows to *<folder>/<id>.csv*, components as rows, XNECs as columns.

        Returns
        -------
        filepath : pathlib.Path
            Path of the written file.
        """
        folder = Path(folder)
        if not folder.is_dir():
            folder.mkdir(parents=True)
        filepath = folder.joinpath(self.id + ".csv")
        self.logger.info("Saving decomposed flows to %s", str(filepath))
        self.to_dataframe(True, rescaled).T.to_csv(filepath)
        return filepath

