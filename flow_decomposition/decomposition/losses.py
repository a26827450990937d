"""Compensation of AC losses for the DC approximation."""

import logging

import numpy as np


def losses_load_id(element):
    return f"LOSSES {element}"


class LossesCompensator():
    """Add loads that reproduce the AC losses of each branch in a DC load flow.

    The losses of a branch are the sum of its terminal powers after an AC load
    flow. They are compensated by a load at the sending terminal, i.e. the
    terminal with positive power. The losses of a tie line are split onto the
    terminals of its two half lines in proportion to their resistance.
    Branches which are disconnected, attached to an unknown node or have no
    terminal power are skipped. Losses with an absolute value of at most
    epsilon are not compensated.

    Parameters
    ----------
    epsilon : float, optional
        Threshold below which (inclusive) losses are not compensated.
    """
    def __init__(self, epsilon=1e-5):
        self.logger = logging.getLogger('log.flow_decomposition.decomposition.LossesCompensator')
        self.epsilon = epsilon

    def run(self, network):
        """Add loss compensating loads to network, based on its current terminal powers.

        Returns
        -------
        loads : list
            Identifiers of the added loads.
        """
        loads = []
        branches = network.branches
        for branch in branches.index:
            p1, p2 = branches.at[branch, "p1"], branches.at[branch, "p2"]
            node_i, node_j = branches.at[branch, "node_i"], branches.at[branch, "node_j"]
            if (not branches.at[branch, "connected"] or np.isnan(p1) or np.isnan(p2)
                    or node_i not in network.nodes.index or node_j not in network.nodes.index):
                self.logger.debug("Skipping losses of branch %s", branch)
                continue

            losses = p1 + p2
            if branch in network.tie_lines.index:
                half_1, half_2, r_1, r_2 = network.tie_lines.loc[branch, ["half_1", "half_2", "r_1", "r_2"]]
                if r_1 + r_2 == 0:
                    share_1 = share_2 = 0.5
                else:
                    share_1, share_2 = r_1/(r_1 + r_2), r_2/(r_1 + r_2)
                loads.extend(self._add_load(network, losses_load_id(half_1), node_i, losses*share_1))
                loads.extend(self._add_load(network, losses_load_id(half_2), node_j, losses*share_2))
            else:
                sending_node = node_i if p1 > 0 else node_j
                loads.extend(self._add_load(network, losses_load_id(branch), sending_node, losses))

        self.logger.info("Compensated losses with %d loads.", len(loads))
        return loads

    def _add_load(self, network, identifier, node, losses):
        if abs(losses) <= self.epsilon:
            return []
        network.add_load(identifier, node, losses)
        return [identifier]
