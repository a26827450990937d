"""Flow decomposition of a three country network."""
from pathlib import Path
import flow_decomposition
from flow_decomposition.network import load_network

# Init the flow decomposition with the options file and load the network
wdir = Path("/examples/") # Change to local copy of examples folder
computer = flow_decomposition.FlowDecompositionComputer(wdir=wdir,
                                                        options_file="profiles/three_countries.json")
network = load_network(wdir.joinpath("data_input/three_countries"))

# %% Access the network tables
nodes = network.nodes
branches = network.branches
injections = network.injections

# %% Run the flow decomposition
results = computer.run(network)

# Decomposed flows of each XNEC, rescaled to the AC reference flow
decomposed_flows = results.to_dataframe()
print(decomposed_flows)

# Intermediate results are available as the options save them
print("Net positions: ", results.get_net_positions())
ptdf = results.get_ptdf_map()

# Duration of each stage
print(results.stage_durations)

# %% Write the decomposed flows as csv
results.export_csv(wdir.joinpath("data_output"))
