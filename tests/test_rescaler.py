import unittest

from context import flow_decomposition
from flow_decomposition.decomposition import DecomposedFlow, DecomposedFlowRescaler
from flow_decomposition.exceptions import DegenerateRescaleError, FlowDecompositionError


def decomposed_flow(ac_reference_flow, dc_reference_flow):
    components = {"Allocated Flow": 100, "PST Flow": 200, "Loop Flow from BE": 500,
                  "Loop Flow from FR": -300, "Loop Flow from GE": -100, "Loop Flow from ES": 700}
    return DecomposedFlow(components, ac_reference_flow, dc_reference_flow)


class TestDecomposedFlow(unittest.TestCase):

    def test_properties(self):
        flow = decomposed_flow(1400, 1100)
        self.assertEqual(flow.allocated_flow, 100)
        self.assertEqual(flow.pst_flow, 200)
        self.assertEqual(flow.loop_flow("FR"), -300)
        self.assertRaises(KeyError, flow.loop_flow, "NL")
        self.assertEqual(flow.loop_flows, {"BE": 500, "ES": 700, "FR": -300, "GE": -100})
        self.assertEqual(flow.total_flow, 1100)
        self.assertEqual(flow.get("Reference AC Flow"), 1400)
        self.assertEqual(flow.get("Reference DC Flow"), 1100)

    def test_immutable(self):
        flow = decomposed_flow(1400, 1100)
        flow.components["Allocated Flow"] = 0
        self.assertEqual(flow.allocated_flow, 100)
        scaled = flow.scale(2)
        self.assertEqual(scaled.allocated_flow, 200)
        self.assertEqual(flow.allocated_flow, 100)

    def test_zones_without_loop_flow(self):
        flow = DecomposedFlow({"Loop Flow from FR": 10}, 10, 10, zones=["BE", "FR"])
        self.assertEqual(flow.loop_flow("BE"), 0)
        self.assertEqual(flow.loop_flows, {"BE": 0, "FR": 10})
        self.assertEqual(flow.scale(2).zones, ["BE", "FR"])
        self.assertRaises(KeyError, flow.loop_flow, "DE")

    def test_fill_components(self):
        flow = DecomposedFlow({"Allocated Flow": 10}, 10, 10)
        filled = flow.fill_components(["Allocated Flow", "PST Flow"])
        self.assertEqual(filled.components, {"Allocated Flow": 10, "PST Flow": 0})


class TestRescaler(unittest.TestCase):

    def setUp(self):
        self.rescaler = DecomposedFlowRescaler()

    def assert_components(self, flow, expected):
        for key, value in expected.items():
            self.assertAlmostEqual(flow.get(key), value)

    def test_increase_to_ac_reference(self):
        rescaled = self.rescaler.rescale(decomposed_flow(1400, 1100))
        self.assert_components(rescaled, {"Allocated Flow": 120, "PST Flow": 240,
                                          "Loop Flow from BE": 600, "Loop Flow from FR": -300,
                                          "Loop Flow from GE": -100, "Loop Flow from ES": 840})
        self.assertAlmostEqual(rescaled.total_flow, 1400)
        self.assertEqual(rescaled.ac_reference_flow, 1400)
        self.assertEqual(rescaled.dc_reference_flow, 1100)

    def test_decrease_to_ac_reference(self):
        rescaled = self.rescaler.rescale(decomposed_flow(800, 1100))
        self.assert_components(rescaled, {"Allocated Flow": 80, "PST Flow": 160,
                                          "Loop Flow from BE": 400, "Loop Flow from FR": -300,
                                          "Loop Flow from GE": -100, "Loop Flow from ES": 560})
        self.assertAlmostEqual(rescaled.total_flow, 800)

    def test_negative_reference_flows(self):
        rescaled = self.rescaler.rescale(decomposed_flow(-1400, -1100))
        self.assert_components(rescaled, {"Allocated Flow": 120, "PST Flow": 240,
                                          "Loop Flow from BE": 600, "Loop Flow from FR": -300,
                                          "Loop Flow from GE": -100, "Loop Flow from ES": 840})
        self.assertAlmostEqual(rescaled.reference_oriented_total_flow, -1400)

    def test_xnec_without_flow(self):
        flow = DecomposedFlow({}, 0, 0, zones=["BE", "FR"])
        self.assertEqual(self.rescaler.rescale(flow, "XNEC"), flow)

    def test_components_matching_ac_reference_flow(self):
        flow = DecomposedFlow({"Allocated Flow": 5, "Loop Flow from FR": -5}, 0, 0)
        self.assertEqual(self.rescaler.rescale(flow), flow)

    def test_only_relieving_flows(self):
        flow = DecomposedFlow({"Allocated Flow": -10, "Loop Flow from FR": -5}, 20, 15)
        with self.assertRaises(DegenerateRescaleError) as context:
            self.rescaler.rescale(flow, "XNEC")
        self.assertIsInstance(context.exception, FlowDecompositionError)
        self.assertIn("XNEC", str(context.exception))

    def test_rescale_all(self):
        rescaled = self.rescaler.rescale_all({"X1": decomposed_flow(1400, 1100),
                                              "X2": decomposed_flow(800, 1100)})
        self.assertAlmostEqual(rescaled["X1"].total_flow, 1400)
        self.assertAlmostEqual(rescaled["X2"].total_flow, 800)

if __name__ == '__main__':
    unittest.main()
