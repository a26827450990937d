import os
import sys
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import flow_decomposition
from flow_decomposition.network import Network


def add_node(network, node, country, slack=False):
    """Add node with its own substation and voltage level in country."""
    network.add_substation("S_" + node, country)
    network.add_voltage_level("VL_" + node, "S_" + node)
    network.add_node(node, "VL_" + node, slack)

def two_countries_network():
    """FR and BE connected by a single line, FR exports 100 MW to BE."""
    network = Network("two_countries")
    add_node(network, "FR1", "FR")
    add_node(network, "BE1", "BE")
    network.add_line("FR1-BE1", "FR1", "BE1")
    network.add_generator("FR_GEN", "FR1", 100, p_max=1000)
    network.add_generator("BE_GEN", "BE1", 50, p_max=1000)
    network.add_load("BE_LOAD", "BE1", 150)
    return network

def loop_flow_network(r=0):
    """FR internal exchange of 100 MW, a third of which loops through BE."""
    network = Network("loop_flow")
    add_node(network, "FR1", "FR")
    add_node(network, "FR2", "FR")
    add_node(network, "BE1", "BE")
    network.add_line("FR1-FR2", "FR1", "FR2", r=r, x=0.01)
    network.add_line("FR1-BE1", "FR1", "BE1", r=r, x=0.01)
    network.add_line("BE1-FR2", "BE1", "FR2", r=r, x=0.01)
    network.add_generator("FR_GEN", "FR1", 100, p_max=1000)
    network.add_load("FR_LOAD", "FR2", 100)
    return network

def pst_network(tap=0):
    """FR and BE connected by a line and a parallel PST with neutral tap 1."""
    network = Network("pst")
    add_node(network, "FR1", "FR")
    add_node(network, "BE1", "BE")
    network.add_line("LINE", "FR1", "BE1")
    network.add_pst("PST", "FR1", "BE1", tap=tap, low_tap=0, step_size=1.0, alpha_low=-1.0,
                    neutral_tap=1)
    network.add_generator("FR_GEN", "FR1", 100, p_max=1000)
    network.add_load("BE_LOAD", "BE1", 100)
    return network

def tie_line_network():
    """FR and DE connected by a resistive tie line."""
    network = Network("tie_line")
    add_node(network, "FR1", "FR")
    add_node(network, "DE1", "DE")
    network.add_tie_line("TIE", "TIE_FR", "TIE_DE", "FR1", "DE1", r_1=0.01, x_1=0.005,
                         r_2=0.03, x_2=0.005)
    network.add_generator("FR_GEN", "FR1", 500, p_max=1000)
    network.add_load("DE_LOAD", "DE1", 500)
    return network
