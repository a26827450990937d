"""Generation shift keys (GLSK) of the flow decomposition."""

import logging


class GlskComputer():
    """Compute automatic generation shift keys.

    The GLSK distributes the net position of a zone onto its generators. The
    weight of a connected generator is its *target_p* relative to the total
    *target_p* of its zone. Zones without generation, i.e. a total of zero,
    have no weights.
    """
    def __init__(self):
        self.logger = logging.getLogger('log.flow_decomposition.decomposition.GlskComputer')

    def run(self, network):
        """Return the GLSK of network.

        Returns
        -------
        glsks : dict
            zone -> {generator: weight}, every zone of the network is a key.
        """
        glsks = {zone: {} for zone in network.countries()}
        injections = network.injections
        generators = injections[(injections.type == "generator") & injections.connected]
        target_p = {zone: {} for zone in glsks}
        for generator in generators.index:
            zone = network.injection_country(generator)
            target_p.setdefault(zone, {})[generator] = generators.at[generator, "target_p"]

        for zone, generation in target_p.items():
            total = sum(generation.values())
            if total == 0:
                if generation:
                    self.logger.warning("Zone %s has no generation, GLSK is empty.", zone)
                glsks[zone] = {}
                continue
            glsks[zone] = {generator: value / total for generator, value in generation.items()}
        return glsks
