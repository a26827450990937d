"""Net positions of the zones of the network."""

import logging

import numpy as np


def _terminal_power(power, connected):
    if not connected or np.isnan(power):
        return 0.0
    return power


class NetPositionComputer():
    """Compute the net position, i.e. net export, of each zone from terminal powers.

    For every branch and HVDC line between two zones, half of the difference
    between the terminal powers is a flow leaving the zone of side 1 and
    entering the zone of side 2. Dangling lines are the boundary of the
    network, their terminal power leaves the zone. Terminals which are
    disconnected or have no power (NaN) count as zero.

    The net positions of a network without dangling lines sum to zero.
    """
    def __init__(self):
        self.logger = logging.getLogger('log.flow_decomposition.decomposition.NetPositionComputer')

    def run(self, network):
        """Return the net positions of network.

        Returns
        -------
        net_positions : dict
            zone -> net position [MW], positive for net export.
        """
        net_positions = {zone: 0.0 for zone in network.countries()}

        branches = network.branches
        for branch, p1, p2, connected in zip(branches.index, branches.p1, branches.p2, branches.connected):
            country_1, country_2 = network.branch_countries(branch)
            if country_1 == country_2:
                continue
            leaving_flow = (_terminal_power(p1, connected) - _terminal_power(p2, connected)) / 2
            net_positions[country_1] += leaving_flow
            net_positions[country_2] -= leaving_flow

        injections = network.injections
        for hvdc_line in network.hvdc_lines.index:
            station_1, station_2 = network.hvdc_lines.loc[hvdc_line, ["converter_station_1",
                                                                      "converter_station_2"]]
            country_1 = network.injection_country(station_1)
            country_2 = network.injection_country(station_2)
            if country_1 == country_2:
                continue
            leaving_flow = (_terminal_power(injections.at[station_1, "p"], injections.at[station_1, "connected"])
                            - _terminal_power(injections.at[station_2, "p"], injections.at[station_2, "connected"])) / 2
            net_positions[country_1] += leaving_flow
            net_positions[country_2] -= leaving_flow

        dangling_lines = injections[injections.type == "dangling_line"]
        for dangling_line, power, connected in zip(dangling_lines.index, dangling_lines.p,
                                                   dangling_lines.connected):
            net_positions[network.injection_country(dangling_line)] += _terminal_power(power, connected)

        self.logger.debug("Net positions: %s", net_positions)
        return net_positions
