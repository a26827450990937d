"""Decomposed flow of a single XNEC."""

import flow_decomposition.tools as tools


class DecomposedFlow():
    """Decomposition of the flow on one XNEC into its components.

    The components are the allocated flow, the PST flow and one loop flow for
    each zone, oriented to the reference direction of the XNEC. Alongside
    the components the AC and DC reference flow of the XNEC are stored.
    Instances are immutable, every operation returns a new instance.

    Parameters
    ----------
    components : dict
        component name -> flow [MW].
    ac_reference_flow, dc_reference_flow : float
        AC and DC reference flow of the XNEC.
    zones : list, optional
        Zones of the network. Defaults to the zones of the loop flow components.
    """
    def __init__(self, components, ac_reference_flow, dc_reference_flow, zones=None):
        self._components = dict(sorted(components.items()))
        prefix = tools.loop_flow_column("")
        if zones is None:
            zones = [key[len(prefix):] for key in self._components if key.startswith(prefix)]
        self._zones = tuple(sorted(zones))
        self._ac_reference_flow = float(ac_reference_flow)
        self._dc_reference_flow = float(dc_reference_flow)

    @property
    def components(self):
        return dict(self._components)

    @property
    def allocated_flow(self):
        return self.get(tools.ALLOCATED_COLUMN_NAME)

    @property
    def pst_flow(self):
        return self.get(tools.PST_COLUMN_NAME)

    @property
    def ac_reference_flow(self):
        return self._ac_reference_flow

    @property
    def dc_reference_flow(self):
        return self._dc_reference_flow

    @property
    def zones(self):
        return list(self._zones)

    def loop_flow(self, zone):
        """Loop flow from zone, raises KeyError if zone is not part of the network."""
        if zone not in self._zones:
            raise KeyError(f"Zone {zone} is not part of the network")
        return self.get(tools.loop_flow_column(zone))

    @property
    def loop_flows(self):
        """zone -> loop flow of every zone."""
        return {zone: self.loop_flow(zone) for zone in self._zones}

    def get(self, key):
        """Value of component or reference flow key, 0 if not present."""
        return self.to_dict().get(key, 0.0)

    def keys(self):
        return list(self.to_dict())

    def to_dict(self):
        """Components and reference flows."""
        values = dict(self._components)
        values[tools.AC_REFERENCE_FLOW_COLUMN_NAME] = self._ac_reference_flow
        values[tools.DC_REFERENCE_FLOW_COLUMN_NAME] = self._dc_reference_flow
        return dict(sorted(values.items()))

    @property
    def total_flow(self):
        return sum(self._components.values())

    @property
    def reference_oriented_total_flow(self):
        return self.total_flow * tools.sign(self._ac_reference_flow)

    def replace_relieving_flows(self):
        """Copy with every negative component set to zero."""
        return self._with_components({key: max(value, 0.0) for key, value in self._components.items()})

    def scale(self, coefficient):
        return self._with_components({key: value * coefficient for key, value in self._components.items()})

    def add(self, other):
        """Component-wise sum, on the components of this instance."""
        return self._with_components({key: value + other.get(key) for key, value in self._components.items()})

    def __add__(self, other):
        return self.add(other)

    def fill_components(self, keys):
        """Copy including all keys as components, missing components are zero."""
        components = {key: 0.0 for key in keys}
        components.update(self._components)
        return self._with_components(components)

    def _with_components(self, components):
        return DecomposedFlow(components, self._ac_reference_flow, self._dc_reference_flow, self._zones)

    def __eq__(self, other):
        if not isinstance(other, DecomposedFlow):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"DecomposedFlow({self.to_dict()})"
