"""The flow decomposition combines all stages into a single run.

Flow Decomposition Structure
----------------------------
The flow on each cross-border network element (XNEC) is decomposed into

    - the allocated flow, which results from the exchange between zones, i.e.
      the net positions distributed onto the generators with the GLSK,
    - one loop flow per zone, which results from the injections of a zone that
      are not part of the exchange,
    - the PST flow, which results from phase-shifting transformers operated
      off their neutral tap.

A run is a straight line of stages, each stage builds on the results of the
previous ones:

    select_xnecs -> ac_load_flow -> [losses_compensation] -> dc_load_flow
    -> network_indexes -> glsk -> nodal_injections -> ptdf
    -> allocated_and_loop_flows -> psdf -> pst_flows -> [rescale]

The network, the load flow solver and the sensitivity engine are
collaborators, which default to the linear implementations of
:mod:`flow_decomposition.network`.
"""

import datetime
import json
import logging
from pathlib import Path

import flow_decomposition.tools as tools
from flow_decomposition.decomposition import (DecomposedFlowRescaler, FlowDecompositionResults,
                                              GlskComputer, LossesCompensator,
                                              NetPositionComputer, NodalInjectionAssembler,
                                              PstFlowComputer, SensitivityAnalyser)
from flow_decomposition.exceptions import FlowDecompositionError, SolverDivergence
from flow_decomposition.matrix import IndexedSparseMatrix
from flow_decomposition.network import (LinearLoadFlow, LinearSensitivityEngine,
                                        NetworkMatrixIndexes, select_xnecs)

def _logging_setup(wdir, logging_level=logging.INFO, file_logger=False):
    # Logging setup
    logger = logging.getLogger('log.flow_decomposition')
    logger.setLevel(logging_level)
    if len(logger.handlers) < (1 + int(file_logger)):
        if file_logger:
            if not wdir.joinpath("logs").is_dir():
                wdir.joinpath("logs").mkdir()
            file_handler = logging.FileHandler(wdir.joinpath("logs").joinpath('flow_decomposition.log'))
            file_handler.setLevel(logging.DEBUG)
            file_handler_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                                                       '%d.%m.%Y %H:%M')
            file_handler.setFormatter(file_handler_formatter)
            logger.addHandler(file_handler)

        if not any(type(handler) is logging.StreamHandler for handler in logger.handlers):
            console_handler = logging.StreamHandler()
            console_handler.setLevel(logging.INFO)
            console_handler.setFormatter(logging.Formatter('%(levelname)s - %(message)s'))
            logger.addHandler(console_handler)

    return logger


class FlowDecompositionComputer():
    """
    The FlowDecompositionComputer runs the flow decomposition of a network.

    Parameters
    ----------
    wdir : pathlib.Path, optional
        Working directory, options files are relative to it and log files
        are written into its *logs* folder. Defaults to the current directory.
    options_file : str, optional
        Name of a json options file. If not provided, using *options* or
        default options as defined in tools.
    options : dict, optional
        Options, missing values are completed with the default options.
    load_flow_solver : :class:`~flow_decomposition.network.LoadFlowSolver`, optional
        Defaults to :class:`~flow_decomposition.network.LinearLoadFlow`.
    sensitivity_engine : :class:`~flow_decomposition.network.SensitivityEngine`, optional
        Defaults to :class:`~flow_decomposition.network.LinearSensitivityEngine`.
    logging_level : int, optional
        Level of the package logger.
    file_logger : bool, optional
        Write a log file into *wdir/logs*.

    Attributes
    ----------
    options : dict
        Options of the flow decomposition, see :meth:`~flow_decomposition.tools.default_options`.
        The options are categorized into:

            - sensitivity: filtering threshold, batch size and threads of the
              sensitivity analysis.
            - losses_compensation, rescale: enable flags and thresholds of the
              optional stages.
            - load_flow: slack distribution and strict handling of diverging
              load flows.
            - results: storing of intermediate results.
    """
    def __init__(self, wdir=None, options_file=None, options=None, load_flow_solver=None,
                 sensitivity_engine=None, logging_level=logging.INFO, file_logger=False):

        self.wdir = Path(wdir) if wdir else Path.cwd()
        _logging_setup(self.wdir, logging_level, file_logger)
        self.logger = logging.getLogger('log.flow_decomposition.FlowDecompositionComputer')

        if options_file:
            self.initialize_options(options_file)
        elif options:
            self.options = tools.add_default_options(options)
        else:
            self.options = tools.default_options()

        self.load_flow_solver = load_flow_solver or LinearLoadFlow()
        self.sensitivity_engine = sensitivity_engine or LinearSensitivityEngine()

    def initialize_options(self, options_file):
        """Initialize options from json file.

        Parameters
        ----------
        options_file : str
            Name of the options file, relative to the working directory.
        """
        try:
            with open(self.wdir.joinpath(options_file)) as opt_file:
                loaded_options = json.load(opt_file)
            self.options = tools.add_default_options(loaded_options)
            self.logger.debug("Options:" + json.dumps(self.options, indent=2) + "\n")

        except FileNotFoundError:
            self.logger.warning("No or invalid options file provided, using default options")
            self.options = tools.default_options()
            self.logger.debug("Options:" + json.dumps(self.options, indent=2) + "\n")

    def _run_stage(self, results, stage, function, *args):
        """Run a stage, errors are raised as FlowDecompositionError carrying the stage."""
        self.logger.debug("Starting stage %s.", stage)
        start_time = datetime.datetime.now()
        try:
            result = function(*args)
        except FlowDecompositionError as error:
            error.stage = stage
            self.logger.error("Flow decomposition aborted: %s", error)
            raise
        except Exception as error:
            self.logger.error("Flow decomposition aborted in stage %s: %s", stage, error)
            raise FlowDecompositionError(f"{type(error).__name__}: {error}", stage) from error
        results.stage_durations[stage] = (datetime.datetime.now() - start_time).total_seconds()
        self.logger.debug("Finished stage %s in %.3f seconds.", stage, results.stage_durations[stage])
        return result

    def _load_flow_parameters(self, dc):
        return {"dc": dc,
                "distributed_slack": self.options["load_flow"]["distributed_slack"],
                "balance_type": self.options["load_flow"]["balance_type"]}

    def run_load_flow(self, network, dc):
        """Run load flow, divergence is logged or, in strict mode, raised.

        Raises
        ------
        SolverDivergence
            If the load flow does not converge and load_flow.strict is set.
        """
        result = self.load_flow_solver.run(network, self._load_flow_parameters(dc))
        if not result.converged:
            message = f"{'DC' if dc else 'AC'} load flow diverged: {result.status}"
            if self.options["load_flow"]["strict"]:
                raise SolverDivergence(message)
            self.logger.error(message)
        return result

    def run(self, network, save_intermediate=None):
        """Run the flow decomposition of network.

        The network is modified: the load flows write terminal powers and the
        losses compensation adds loads.

        Parameters
        ----------
        network : :class:`~flow_decomposition.network.Network`
            Network to decompose.
        save_intermediate : bool, optional
            Store intermediate results, defaults to option results.save_intermediate.

        Returns
        -------
        results : :class:`~flow_decomposition.decomposition.FlowDecompositionResults`

        Raises
        ------
        FlowDecompositionError
            If any stage fails, with the name of the stage as attribute *stage*.
        """
        if save_intermediate is None:
            save_intermediate = self.options["results"]["save_intermediate"]
        results = FlowDecompositionResults(save_intermediate, network.name)
        self.logger.info("Running flow decomposition %s on network %s",
                         self.options["title"], network.name)

        xnecs = self._run_stage(results, "select_xnecs", select_xnecs, network)
        self.logger.info("Selected %d XNECs", len(xnecs))
        net_positions = self._run_stage(results, "ac_load_flow", self._ac_load_flow,
                                        network, xnecs, results)
        if self.options["losses_compensation"]["enable"]:
            self._run_stage(results, "losses_compensation", self._compensate_losses, network)
        self._run_stage(results, "dc_load_flow", self._dc_load_flow, network, xnecs, results)

        indexes = self._run_stage(results, "network_indexes", NetworkMatrixIndexes, network, xnecs)
        glsks = self._run_stage(results, "glsk", self._glsks, network, results)
        nodal_injections = self._run_stage(results, "nodal_injections", self._nodal_injections,
                                           network, indexes, glsks, net_positions, results)

        sensitivity_analyser = SensitivityAnalyser(self.sensitivity_engine, network,
                                                   indexes.xnec_index, self.options)
        ptdf = self._run_stage(results, "ptdf", self._ptdf, sensitivity_analyser, indexes, results)
        self._run_stage(results, "allocated_and_loop_flows", self._allocated_and_loop_flows,
                        ptdf, nodal_injections, results)
        psdf = self._run_stage(results, "psdf", self._psdf, sensitivity_analyser, indexes, results)
        self._run_stage(results, "pst_flows", self._pst_flows, network, indexes, psdf, results)

        if self.options["rescale"]["enable"]:
            self._run_stage(results, "rescale", self._rescale, results)

        self.logger.info("Flow decomposition done, %.2f seconds.", sum(results.stage_durations.values()))
        return results

    def _ac_load_flow(self, network, xnecs, results):
        self.run_load_flow(network, dc=False)
        results.save_ac_reference_flows({xnec: network.branches.at[xnec, "p1"] for xnec in xnecs})
        net_positions = NetPositionComputer().run(network)
        results.save_net_positions(net_positions)
        return net_positions

    def _compensate_losses(self, network):
        self.run_load_flow(network, dc=False)
        compensator = LossesCompensator(self.options["losses_compensation"]["epsilon"])
        return compensator.run(network)

    def _dc_load_flow(self, network, xnecs, results):
        self.run_load_flow(network, dc=True)
        results.save_dc_reference_flows({xnec: network.branches.at[xnec, "p1"] for xnec in xnecs})

    def _glsks(self, network, results):
        glsks = GlskComputer().run(network)
        results.save_glsks(glsks)
        return glsks

    def _nodal_injections(self, network, indexes, glsks, net_positions, results):
        assembler = NodalInjectionAssembler(network, indexes.node_index, network.countries())
        dc_injections = assembler.dc_reference_injections()
        results.save_dc_nodal_injections(dc_injections)
        nodal_injections = assembler.run(glsks, net_positions, dc_injections)
        results.save_nodal_injections(nodal_injections)
        return nodal_injections

    def _ptdf(self, sensitivity_analyser, indexes, results):
        ptdf = sensitivity_analyser.run(indexes.node_index, "injection")
        results.save_ptdf(ptdf)
        return ptdf

    def _allocated_and_loop_flows(self, ptdf, nodal_injections, results):
        allocated_and_loop_flows = IndexedSparseMatrix.multiply(ptdf, nodal_injections)
        results.save_allocated_and_loop_flows(allocated_and_loop_flows)
        return allocated_and_loop_flows

    def _psdf(self, sensitivity_analyser, indexes, results):
        psdf = sensitivity_analyser.run(indexes.pst_index, "pst")
        results.save_psdf(psdf)
        return psdf

    def _pst_flows(self, network, indexes, psdf, results):
        pst_flows = PstFlowComputer().run(network, indexes.pst_index, psdf)
        results.save_pst_flows(pst_flows)
        return pst_flows

    def _rescale(self, results):
        rescaler = DecomposedFlowRescaler(self.options["rescale"]["epsilon"])
        decomposed_flows = results.get_decomposed_flows(fill_zeros=False, rescaled=False)
        results.save_rescaled_flows(rescaler.rescale_all(decomposed_flows))
