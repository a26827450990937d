"""Network model of the flow decomposition."""

import copy
import json
import logging
from pathlib import Path

import numpy as np
import pandas as pd
import scipy.sparse
from scipy.sparse.csgraph import connected_components

import flow_decomposition.tools as tools
from flow_decomposition.exceptions import TopologyError

BRANCH_TYPES = ["line", "transformer", "pst", "tie_line"]
INJECTION_TYPES = ["generator", "load", "dangling_line", "converter_station"]

_DTYPES = {"str": object, "float64": float, "bool": bool}

def load_network_structure():
    """Load the network structure, i.e. tables, columns, types and defaults."""
    with open(Path(__file__).parent.joinpath("network_structure.json"), "r") as jsonfile:
        network_structure = json.load(jsonfile)

    for table in network_structure:
        for column in network_structure[table]:
            if network_structure[table][column]["default"] == "none":
                network_structure[table][column]["default"] = np.nan
    return network_structure


class Network():
    """Electrical network, represented by a set of pandas tables.

    The network is the carrier of topology, country attribution, PST tap
    positions and the terminal active power of branches and injections. Load
    flow solvers write the terminal powers (branches: *p1*, *p2*, injections:
    *p*) in place, the flow decomposition reads them. All powers are in MW
    and follow the load sign convention, i.e. a positive terminal power is
    flowing from the bus into the element.

    The tables and their columns are defined in *network_structure.json*,
    which also contains the default value of each column:

        - substations: country of each substation.
        - voltage_levels: substation of each voltage level.
        - nodes: buses, attached to a voltage level, optionally marked as slack.
        - branches: lines, transformers, PSTs and tie lines between two nodes,
          with resistance and reactance in p.u. of *base_mva*.
        - tie_lines: the two half lines of a tie line branch.
        - psts: tap position, tap range and angles [deg] of PST branches.
        - injections: generators, loads, dangling lines and HVDC converter stations.
        - hvdc_lines: HVDC links between two converter stations.

    Parameters
    ----------
    name : str, optional
        Name of the network.
    base_mva : float, optional
        Base power of the p.u. impedances, defaults to 100 MVA.

    Attributes
    ----------
    structure : dict
        Network structure, table -> column -> {type, default}.
    validation_report : dict
        Default values and missing data added in :meth:`validate`.
    """
    def __init__(self, name="network", base_mva=100):
        self.logger = logging.getLogger('log.flow_decomposition.network.Network')
        self.name = name
        self.base_mva = base_mva
        self.structure = load_network_structure()
        self.validation_report = {}
        for table in self.structure:
            setattr(self, table, self._empty_table(table))

    @property
    def tables(self):
        return list(self.structure)

    def _columns(self, table):
        return [col for col in self.structure[table] if col != "index"]

    def _dtypes(self, table):
        return {col: _DTYPES[self.structure[table][col]["type"]] for col in self._columns(table)}

    def _empty_table(self, table):
        data = {col: pd.Series(dtype=dtype) for col, dtype in self._dtypes(table).items()}
        return pd.DataFrame(data, index=pd.Index([], name="index", dtype=object))

    def _append_row(self, table, identifier, **values):
        """Append a row to table, columns not in values are set to their default."""
        frame = getattr(self, table)
        if identifier in frame.index:
            raise ValueError(f"{identifier} is already part of {table}")
        unknown = [col for col in values if col not in self.structure[table]]
        if unknown:
            raise ValueError(f"Columns {unknown} are not part of {table}")

        row = {col: values.get(col, self.structure[table][col]["default"])
               for col in self._columns(table)}
        new_row = pd.DataFrame([row], index=pd.Index([identifier], name="index"))
        new_row = new_row.astype(self._dtypes(table))
        if frame.empty:
            setattr(self, table, new_row)
        else:
            setattr(self, table, pd.concat([frame, new_row]))

    def add_substation(self, identifier, country=None):
        self._append_row("substations", identifier, country=np.nan if country is None else country)

    def add_voltage_level(self, identifier, substation, nominal_v=400):
        self._append_row("voltage_levels", identifier, substation=substation, nominal_v=nominal_v)

    def add_node(self, identifier, voltage_level, slack=False):
        self._append_row("nodes", identifier, voltage_level=voltage_level, slack=slack)

    def add_branch(self, identifier, node_i, node_j, r=0, x=0.01, branch_type="line", connected=True):
        """Add a branch between node_i and node_j, impedances in p.u."""
        if branch_type not in BRANCH_TYPES:
            raise ValueError(f"Branch type {branch_type} not in {BRANCH_TYPES}")
        self._append_row("branches", identifier, node_i=node_i, node_j=node_j, r=r, x=x,
                         type=branch_type, connected=connected)

    def add_line(self, identifier, node_i, node_j, r=0, x=0.01, connected=True):
        self.add_branch(identifier, node_i, node_j, r, x, "line", connected)

    def add_transformer(self, identifier, node_i, node_j, r=0, x=0.01, connected=True):
        self.add_branch(identifier, node_i, node_j, r, x, "transformer", connected)

    def add_pst(self, identifier, node_i, node_j, tap, low_tap, step_size, alpha_low,
                neutral_tap=None, r=0, x=0.01, connected=True):
        """Add a phase-shifting transformer.

        The phase shift of a tap position is ``alpha_low + (tap - low_tap) * step_size``
        in degrees. PSTs without neutral tap are not considered in the flow decomposition.
        """
        self.add_branch(identifier, node_i, node_j, r, x, "pst", connected)
        self._append_row("psts", identifier, tap=tap, low_tap=low_tap, step_size=step_size,
                         alpha_low=alpha_low,
                         neutral_tap=np.nan if neutral_tap is None else neutral_tap)

    def add_tie_line(self, identifier, half_1, half_2, node_i, node_j, r_1=0, x_1=0.005,
                     r_2=0, x_2=0.005, connected=True):
        """Add a tie line, a branch made of two half lines joined at a boundary point."""
        self.add_branch(identifier, node_i, node_j, r_1 + r_2, x_1 + x_2, "tie_line", connected)
        self._append_row("tie_lines", identifier, half_1=half_1, half_2=half_2, r_1=r_1, r_2=r_2)

    def add_generator(self, identifier, node, target_p, p_max=0, connected=True):
        self._append_row("injections", identifier, node=node, type="generator",
                         target_p=target_p, p_max=p_max, connected=connected)

    def add_load(self, identifier, node, p0, connected=True):
        self._append_row("injections", identifier, node=node, type="load", p0=p0,
                         connected=connected)

    def add_dangling_line(self, identifier, node, p0, connected=True):
        """Add a dangling line, p0 is the power flowing out of the network to the boundary."""
        self._append_row("injections", identifier, node=node, type="dangling_line", p0=p0,
                         connected=connected)

    def add_hvdc_line(self, identifier, converter_station_1, converter_station_2,
                      node_1, node_2, setpoint, connected=True):
        """Add a HVDC line and its two converter stations.

        A positive setpoint transfers power from converter station 1 to
        converter station 2.
        """
        for station, node in ((converter_station_1, node_1), (converter_station_2, node_2)):
            self._append_row("injections", station, node=node, type="converter_station",
                             connected=connected)
        self._append_row("hvdc_lines", identifier, converter_station_1=converter_station_1,
                         converter_station_2=converter_station_2, setpoint=setpoint,
                         connected=connected)

    def node_country(self, node):
        """Return the country of node.

        Raises
        ------
        TopologyError
            If the node is not attached to a voltage level, the voltage level
            is not attached to a substation or the substation has no country.
        """
        if node not in self.nodes.index:
            raise TopologyError(f"Terminal is not connected to a known node: {node}")
        voltage_level = self.nodes.at[node, "voltage_level"]
        if pd.isna(voltage_level) or voltage_level not in self.voltage_levels.index:
            raise TopologyError(f"Node {node} is not attached to a voltage level")
        substation = self.voltage_levels.at[voltage_level, "substation"]
        if pd.isna(substation) or substation not in self.substations.index:
            raise TopologyError(f"Voltage level {voltage_level} is not attached to a substation")
        country = self.substations.at[substation, "country"]
        if pd.isna(country):
            raise TopologyError(f"Substation {substation} has no country")
        return country

    def injection_country(self, injection):
        return self.node_country(self.injections.at[injection, "node"])

    def branch_countries(self, branch):
        """Return the countries of both terminals of branch."""
        return (self.node_country(self.branches.at[branch, "node_i"]),
                self.node_country(self.branches.at[branch, "node_j"]))

    def countries(self):
        """Sorted list of all countries of the network."""
        return sorted(self.substations.country.dropna().unique())

    def connected_branches(self):
        """Connected branches whose terminals are both known nodes."""
        condition = (self.branches.connected
                     & self.branches.node_i.isin(self.nodes.index)
                     & self.branches.node_j.isin(self.nodes.index))
        return self.branches[condition]

    def component_labels(self):
        """Label of the synchronous component of each node.

        Synchronous components are connected via AC branches only, HVDC lines
        separate components.

        Returns
        -------
        labels : pd.Series
            Component label, indexed by node.
        """
        branches = self.connected_branches()
        number_nodes = len(self.nodes)
        node_i = self.nodes.index.get_indexer(branches.node_i)
        node_j = self.nodes.index.get_indexer(branches.node_j)
        adjacency = scipy.sparse.coo_matrix((np.ones(len(branches)), (node_i, node_j)),
                                            shape=(number_nodes, number_nodes))
        _, labels = connected_components(adjacency, directed=False)
        return pd.Series(labels, index=self.nodes.index)

    def main_component_nodes(self):
        """Set of nodes in the main, i.e. largest, synchronous component."""
        labels = self.component_labels()
        if labels.empty:
            return set()
        main_component = int(np.argmax(np.bincount(labels.values)))
        return set(labels.index[labels == main_component])

    def pst_angle(self, pst, tap):
        """Phase shift [deg] of pst at tap position tap."""
        return (self.psts.at[pst, "alpha_low"]
                + (tap - self.psts.at[pst, "low_tap"]) * self.psts.at[pst, "step_size"])

    def pst_current_angle(self, pst):
        return self.pst_angle(pst, self.psts.at[pst, "tap"])

    def pst_neutral_angle(self, pst):
        """Phase shift [deg] at neutral tap, NaN if pst has no neutral tap."""
        neutral_tap = self.psts.at[pst, "neutral_tap"]
        if pd.isna(neutral_tap):
            return np.nan
        return self.pst_angle(pst, neutral_tap)

    def set_pst_tap(self, pst, tap):
        low_tap = self.psts.at[pst, "low_tap"]
        if tap < low_tap:
            raise ValueError(f"Tap {tap} of PST {pst} below lowest tap {low_tap}")
        self.psts.loc[pst, "tap"] = tap

    def reset_flows(self):
        """Set all terminal powers to NaN, i.e. the network is unsolved."""
        self.branches.loc[:, ["p1", "p2"]] = np.nan
        self.injections.loc[:, "p"] = np.nan

    def copy(self):
        """Return an independent copy of the network."""
        network = Network(self.name, self.base_mva)
        for table in self.tables:
            setattr(network, table, getattr(self, table).copy())
        network.validation_report = copy.deepcopy(self.validation_report)
        return network

    def validate(self):
        """Validate the network tables to be conform with the network structure.

        Missing columns are added and NaN values are replaced with the default
        value of the column, where the default is not NaN. Both is
        documented in the *validation_report* attribute. Afterwards the
        references between tables are checked.

        Raises
        ------
        TopologyError
            If a branch, injection, PST, tie line or HVDC line references an
            element that is not part of the network.
        ValueError
            If branch or injection types are unknown.
        """
        self.validation_report = {"default_values": {}}
        for table in self.structure:
            self.validation_report["default_values"][table] = {}
            frame = getattr(self, table).copy()
            for col in self._columns(table):
                default_value = self.structure[table][col]["default"]
                if col not in frame.columns:
                    frame[col] = default_value
                    self.validation_report["default_values"][table][col] = default_value
                elif frame[col].isna().any() and not pd.isna(default_value):
                    frame.loc[frame[col].isna(), col] = default_value
                    self.validation_report["default_values"][table][col] = default_value
            frame = frame[self._columns(table)].astype(self._dtypes(table))
            for col in self._columns(table):
                if self.structure[table][col]["type"] == "str":
                    frame[col] = frame[col].where(frame[col].isna(), frame[col].astype(str))
            frame.index = frame.index.astype(str)
            frame.index.name = "index"
            setattr(self, table, frame)

        self.validation_report = tools.remove_empty_subdicts(self.validation_report)
        if self.validation_report:
            self.logger.warning("Some data missing or contained NaNs. See validation_report.")
        self._validate_references()

    def _validate_references(self):
        checks = [("branches", "node_i", self.nodes.index),
                  ("branches", "node_j", self.nodes.index),
                  ("injections", "node", self.nodes.index),
                  ("hvdc_lines", "converter_station_1", self.injections.index),
                  ("hvdc_lines", "converter_station_2", self.injections.index)]
        for table, column, reference in checks:
            frame = getattr(self, table)
            invalid = frame.index[~frame[column].isin(reference)]
            if not invalid.empty:
                raise TopologyError(f"{table} {list(invalid)} reference unknown {column}")

        for table, branch_type in (("psts", "pst"), ("tie_lines", "tie_line")):
            frame = getattr(self, table)
            invalid = frame.index[~frame.index.isin(self.branches.index[self.branches.type == branch_type])]
            if not invalid.empty:
                raise TopologyError(f"{table} {list(invalid)} are not {branch_type} branches")

        for table, valid_types in (("branches", BRANCH_TYPES), ("injections", INJECTION_TYPES)):
            frame = getattr(self, table)
            invalid = frame.index[~frame.type.isin(valid_types)]
            if not invalid.empty:
                raise ValueError(f"{table} {list(invalid)} have types not in {valid_types}")

        self.logger.info("Network %s: %d nodes, %d branches, %d injections, %d countries.",
                         self.name, len(self.nodes), len(self.branches),
                         len(self.injections), len(self.countries()))
