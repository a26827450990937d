import logging
import tempfile
import unittest
from pathlib import Path

import numpy as np

from context import flow_decomposition, add_node, two_countries_network, loop_flow_network, pst_network
from flow_decomposition.exceptions import TopologyError
from flow_decomposition.network import (Network, NetworkMatrixIndexes, LinearLoadFlow,
                                        load_network, save_network, select_xnecs)


class TestNetwork(unittest.TestCase):

    def setUp(self):
        self.network = two_countries_network()
        self.network.logger.setLevel(logging.ERROR)

    def test_tables_have_structure_columns(self):
        for table in self.network.tables:
            frame = getattr(self.network, table)
            self.assertEqual(list(frame.columns), self.network._columns(table))

    def test_duplicate_identifier(self):
        self.assertRaises(ValueError, self.network.add_load, "BE_LOAD", "BE1", 10)

    def test_unknown_branch_type(self):
        self.assertRaises(ValueError, self.network.add_branch, "B", "FR1", "BE1", branch_type="cable")

    def test_countries(self):
        self.assertEqual(self.network.countries(), ["BE", "FR"])
        self.assertEqual(self.network.node_country("FR1"), "FR")
        self.assertEqual(self.network.injection_country("BE_LOAD"), "BE")
        self.assertEqual(self.network.branch_countries("FR1-BE1"), ("FR", "BE"))

    def test_substation_without_country(self):
        self.network.add_substation("S_X")
        self.network.add_voltage_level("VL_X", "S_X")
        self.network.add_node("X1", "VL_X")
        self.assertRaises(TopologyError, self.network.node_country, "X1")

    def test_voltage_level_without_substation(self):
        self.network.add_voltage_level("VL_X", "S_UNKNOWN")
        self.network.add_node("X1", "VL_X")
        self.assertRaises(TopologyError, self.network.node_country, "X1")

    def test_unknown_node(self):
        self.assertRaises(TopologyError, self.network.node_country, "UNKNOWN")

    def test_component_labels(self):
        add_node(self.network, "FR2", "FR")
        labels = self.network.component_labels()
        self.assertEqual(labels["FR1"], labels["BE1"])
        self.assertNotEqual(labels["FR1"], labels["FR2"])
        self.assertEqual(self.network.main_component_nodes(), {"FR1", "BE1"})

    def test_pst_angles(self):
        network = pst_network(tap=2)
        self.assertAlmostEqual(network.pst_current_angle("PST"), 1.0)
        self.assertAlmostEqual(network.pst_neutral_angle("PST"), 0.0)
        network.set_pst_tap("PST", 1)
        self.assertAlmostEqual(network.pst_current_angle("PST"), 0.0)
        self.assertRaises(ValueError, network.set_pst_tap, "PST", -1)

    def test_copy_is_independent(self):
        copy = self.network.copy()
        copy.add_load("FR_LOAD", "FR1", 10)
        self.assertNotIn("FR_LOAD", self.network.injections.index)

    def test_validate_adds_defaults(self):
        self.network.branches = self.network.branches.drop(columns=["x"])
        self.network.validate()
        self.assertEqual(self.network.branches.at["FR1-BE1", "x"], 0.01)
        self.assertIn("x", self.network.validation_report["default_values"]["branches"])

    def test_validate_unknown_node(self):
        self.network.add_load("LOAD_X", "UNKNOWN", 10)
        self.assertRaises(TopologyError, self.network.validate)

    def test_validate_unknown_injection_type(self):
        self.network.injections.loc["BE_LOAD", "type"] = "battery"
        self.assertRaises(ValueError, self.network.validate)


class TestNetworkIndexes(unittest.TestCase):

    def test_select_xnecs(self):
        network = loop_flow_network()
        self.assertEqual(select_xnecs(network), ["FR1-BE1", "BE1-FR2"])

    def test_internal_transformer_is_no_xnec(self):
        network = two_countries_network()
        add_node(network, "FR1_220", "FR")
        network.add_transformer("FR1-FR1_220", "FR1", "FR1_220", x=0.02)
        self.assertEqual(select_xnecs(network), ["FR1-BE1"])
        self.assertEqual(network.branches.at["FR1-FR1_220", "type"], "transformer")

    def test_disconnected_branch_is_no_xnec(self):
        network = loop_flow_network()
        network.branches.loc["FR1-BE1", "connected"] = False
        self.assertEqual(select_xnecs(network), ["BE1-FR2"])

    def test_nodes_of_main_component(self):
        network = two_countries_network()
        add_node(network, "FR2", "FR")
        network.add_generator("ISLAND_GEN", "FR2", 10)
        network.add_load("OFF_LOAD", "FR1", 10, connected=False)
        indexes = NetworkMatrixIndexes(network)
        self.assertEqual(list(indexes.node_index), ["FR_GEN", "BE_GEN", "BE_LOAD"])
        self.assertEqual(list(indexes.xnec_index), ["FR1-BE1"])

    def test_psts_require_neutral_tap(self):
        network = pst_network()
        network.add_pst("PST_NO_NEUTRAL", "FR1", "BE1", tap=0, low_tap=0, step_size=1.0, alpha_low=0)
        indexes = NetworkMatrixIndexes(network)
        self.assertEqual(list(indexes.pst_index), ["PST"])


class TestLinearLoadFlow(unittest.TestCase):

    def test_dc_load_flow(self):
        network = two_countries_network()
        result = LinearLoadFlow().run(network, {"dc": True})
        self.assertTrue(result.converged)
        self.assertAlmostEqual(network.branches.at["FR1-BE1", "p1"], 100)
        self.assertAlmostEqual(network.branches.at["FR1-BE1", "p2"], -100)
        self.assertAlmostEqual(network.injections.at["FR_GEN", "p"], -100)
        self.assertAlmostEqual(network.injections.at["BE_LOAD", "p"], 150)

    def test_loop_flow_split(self):
        network = loop_flow_network()
        LinearLoadFlow().run(network, {"dc": True})
        self.assertAlmostEqual(network.branches.at["FR1-FR2", "p1"], 200/3)
        self.assertAlmostEqual(network.branches.at["FR1-BE1", "p1"], 100/3)
        self.assertAlmostEqual(network.branches.at["BE1-FR2", "p1"], 100/3)

    def test_distributed_slack(self):
        network = two_countries_network()
        network.add_load("FR_LOAD", "FR1", 100)
        LinearLoadFlow().run(network, {"dc": True})
        # 100 MW mismatch shared by both generators with equal p_max
        self.assertAlmostEqual(network.injections.at["FR_GEN", "p"], -150)
        self.assertAlmostEqual(network.injections.at["BE_GEN", "p"], -100)
        self.assertAlmostEqual(network.branches.at["FR1-BE1", "p1"], 50)

    def test_ac_losses(self):
        network = loop_flow_network(r=0.01)
        LinearLoadFlow().run(network, {"dc": False})
        p1, p2 = network.branches.loc["FR1-BE1", ["p1", "p2"]]
        self.assertAlmostEqual(p1 + p2, 0.01 * (100/3)**2 / 100)
        self.assertAlmostEqual(p1 - p2, 200/3)

    def test_pst_shifts_flow(self):
        network = pst_network(tap=1)
        LinearLoadFlow().run(network, {"dc": True})
        self.assertAlmostEqual(network.branches.at["LINE", "p1"], 50)
        network.set_pst_tap("PST", 0)
        LinearLoadFlow().run(network, {"dc": True})
        self.assertGreater(network.branches.at["LINE", "p1"], 50)
        self.assertAlmostEqual(network.branches.at["LINE", "p1"] + network.branches.at["PST", "p1"], 100)

    def test_reset_flows(self):
        network = two_countries_network()
        LinearLoadFlow().run(network)
        network.reset_flows()
        self.assertTrue(np.isnan(network.branches.at["FR1-BE1", "p1"]))
        self.assertTrue(network.injections.p.isna().all())


class TestNetworkWorker(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.temp_dir = tempfile.TemporaryDirectory()
        cls.wdir = Path(cls.temp_dir.name)
        cls.test_data = Path(__file__).parent.joinpath("test_data")

    @classmethod
    def tearDownClass(cls):
        cls.temp_dir.cleanup()
        cls.wdir = None
        cls.temp_dir = None

    def test_load_csv_folder(self):
        network = load_network(self.test_data.joinpath("two_countries"))
        self.assertEqual(network.name, "two_countries")
        self.assertEqual(network.countries(), ["BE", "FR"])
        self.assertEqual(list(network.injections.index), ["FR_GEN", "BE_GEN", "BE_LOAD"])
        self.assertTrue(network.branches.at["FR1-BE1", "connected"])
        self.assertTrue(network.branches.p1.isna().all())
        self.assertIn("r", network.validation_report["default_values"]["branches"])

    def test_save_and_load(self):
        network = two_countries_network()
        save_network(network, self.wdir.joinpath("saved"))
        self.assertTrue(self.wdir.joinpath("saved.xlsx").is_file())

        for path in (self.wdir.joinpath("saved.xlsx"), self.wdir.joinpath("saved")):
            loaded = load_network(path)
            self.assertEqual(list(loaded.nodes.index), ["FR1", "BE1"])
            self.assertEqual(loaded.injection_country("BE_LOAD"), "BE")
            self.assertAlmostEqual(loaded.injections.at["BE_LOAD", "p0"], 150)

    def test_save_zipped(self):
        network = two_countries_network()
        save_network(network, self.wdir.joinpath("zipped"), archive=True)
        self.assertFalse(self.wdir.joinpath("zipped").is_dir())
        loaded = load_network(self.wdir.joinpath("zipped.zip"))
        self.assertEqual(list(loaded.branches.index), ["FR1-BE1"])

    def test_invalid_fileformat(self):
        path = self.wdir.joinpath("network.xyz")
        path.write_text("invalid")
        self.assertRaises(TypeError, load_network, path)

if __name__ == '__main__':
    unittest.main()
